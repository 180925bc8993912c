"""Projects and sub-projects — the scopes vendors bid on."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from dealflow.models.opportunity import to_decimal


class ProjectType(str, enum.Enum):
    STANDARD = "standard"
    MEGA = "mega"


@dataclass(frozen=True)
class ProjectScope:
    required_services: tuple[str, ...] = ()
    skill_requirements: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectBudget:
    min: Optional[Decimal] = None
    max: Optional[Decimal] = None
    total: Optional[Decimal] = None


@dataclass
class SubProject:
    """An independently biddable slice of a project.

    Only structurally complete sub-projects may be bid on by vendors.
    """
    sub_project_id: str
    title: str = ""
    description: str = ""
    category: Optional[str] = None
    scope: Optional[ProjectScope] = None
    budget: Optional[ProjectBudget] = None


@dataclass
class Project:
    project_id: str
    title: str
    owner_id: str
    project_type: ProjectType = ProjectType.STANDARD
    category: Optional[str] = None
    sub_projects: list[SubProject] = field(default_factory=list)

    def find_sub_project(self, sub_project_id: str) -> Optional[SubProject]:
        for sp in self.sub_projects:
            if sp.sub_project_id == sub_project_id:
                return sp
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "title": self.title,
            "owner_id": self.owner_id,
            "project_type": self.project_type.value,
            "category": self.category,
            "sub_projects": [_sub_project_to_dict(sp) for sp in self.sub_projects],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Project:
        return Project(
            project_id=data["project_id"],
            title=data.get("title", ""),
            owner_id=data.get("owner_id", ""),
            project_type=ProjectType(data.get("project_type", "standard")),
            category=data.get("category"),
            sub_projects=[_sub_project_from_dict(sp) for sp in data.get("sub_projects") or []],
        )


def _opt_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _opt_dec(value: Any) -> Optional[Decimal]:
    return to_decimal(value) if value is not None else None


def _sub_project_to_dict(sp: SubProject) -> dict[str, Any]:
    return {
        "sub_project_id": sp.sub_project_id,
        "title": sp.title,
        "description": sp.description,
        "category": sp.category,
        "scope": {
            "required_services": list(sp.scope.required_services),
            "skill_requirements": list(sp.scope.skill_requirements),
        } if sp.scope is not None else None,
        "budget": {
            "min": _opt_str(sp.budget.min),
            "max": _opt_str(sp.budget.max),
            "total": _opt_str(sp.budget.total),
        } if sp.budget is not None else None,
    }


def _sub_project_from_dict(data: dict[str, Any]) -> SubProject:
    scope = data.get("scope")
    budget = data.get("budget")
    return SubProject(
        sub_project_id=data["sub_project_id"],
        title=data.get("title", ""),
        description=data.get("description", ""),
        category=data.get("category"),
        scope=ProjectScope(
            required_services=tuple(scope.get("required_services") or ()),
            skill_requirements=tuple(scope.get("skill_requirements") or ()),
        ) if scope else None,
        budget=ProjectBudget(
            min=_opt_dec(budget.get("min")),
            max=_opt_dec(budget.get("max")),
            total=_opt_dec(budget.get("total")),
        ) if budget else None,
    )
