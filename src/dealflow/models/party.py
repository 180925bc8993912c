"""Marketplace participants and the contract party types derived from them."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional


class Role(str, enum.Enum):
    """Closed set of user roles. Legality rules dispatch on these."""
    ENTITY = "entity"
    BENEFICIARY = "beneficiary"
    PROJECT_LEAD = "project_lead"
    VENDOR = "vendor"
    VENDOR_CORPORATE = "vendor_corporate"
    VENDOR_INDIVIDUAL = "vendor_individual"
    SERVICE_PROVIDER = "service_provider"
    SKILL_SERVICE_PROVIDER = "skill_service_provider"
    SUB_CONTRACTOR = "sub_contractor"
    CONSULTANT = "consultant"
    INDIVIDUAL = "individual"
    ADMIN = "admin"


VENDOR_ROLES = frozenset({Role.VENDOR, Role.VENDOR_CORPORATE, Role.VENDOR_INDIVIDUAL})
BUYER_ONLY_ROLES = frozenset({Role.ENTITY, Role.BENEFICIARY, Role.PROJECT_LEAD})


class BuyerPartyType(str, enum.Enum):
    BENEFICIARY = "BENEFICIARY"
    VENDOR_CORPORATE = "VENDOR_CORPORATE"
    VENDOR_INDIVIDUAL = "VENDOR_INDIVIDUAL"


class ProviderPartyType(str, enum.Enum):
    VENDOR_CORPORATE = "VENDOR_CORPORATE"
    VENDOR_INDIVIDUAL = "VENDOR_INDIVIDUAL"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    CONSULTANT = "CONSULTANT"
    SUB_CONTRACTOR = "SUB_CONTRACTOR"


VENDOR_PARTY_TYPES = frozenset({"VENDOR_CORPORATE", "VENDOR_INDIVIDUAL"})


def buyer_party_type(role: Optional[Role]) -> BuyerPartyType:
    """Contract buyer type for a role. Anything non-vendor is a beneficiary."""
    if role in (Role.VENDOR, Role.VENDOR_CORPORATE):
        return BuyerPartyType.VENDOR_CORPORATE
    if role == Role.VENDOR_INDIVIDUAL:
        return BuyerPartyType.VENDOR_INDIVIDUAL
    return BuyerPartyType.BENEFICIARY


def provider_party_type(role: Optional[Role]) -> ProviderPartyType:
    """Contract provider type for a role. Unknown roles provide services."""
    if role in (Role.VENDOR, Role.VENDOR_CORPORATE):
        return ProviderPartyType.VENDOR_CORPORATE
    if role == Role.VENDOR_INDIVIDUAL:
        return ProviderPartyType.VENDOR_INDIVIDUAL
    if role == Role.CONSULTANT:
        return ProviderPartyType.CONSULTANT
    if role == Role.SUB_CONTRACTOR:
        return ProviderPartyType.SUB_CONTRACTOR
    return ProviderPartyType.SERVICE_PROVIDER


@dataclass
class UserAccount:
    """A registered participant. Users represent their companies.

    Also serves as the "provider" profile when scoring a match.
    """
    user_id: str
    role: Role
    display_name: str = ""
    company_id: Optional[str] = None
    experience_level: Optional[str] = None
    years_in_business: Optional[int] = None
    skills: tuple[str, ...] = ()
    reputation_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "role": self.role.value,
            "display_name": self.display_name,
            "company_id": self.company_id,
            "experience_level": self.experience_level,
            "years_in_business": self.years_in_business,
            "skills": list(self.skills),
            "reputation_score": self.reputation_score,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> UserAccount:
        return UserAccount(
            user_id=data["user_id"],
            role=Role(data["role"]),
            display_name=data.get("display_name", ""),
            company_id=data.get("company_id"),
            experience_level=data.get("experience_level"),
            years_in_business=data.get("years_in_business"),
            skills=tuple(data.get("skills") or ()),
            reputation_score=float(data.get("reputation_score", 0.0)),
        )
