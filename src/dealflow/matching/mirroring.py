"""Semantic mirroring — compare a Need's "required X" with an Offer's "available X".

Four independent axes, each producing a MirrorResult:

    skills     required skills vs available skills (substring, both ways)
    budget     need budget range vs offer rate range
    timeline   need start/duration vs offer availability window
    location   need location vs offer location (city > region > country)

Pure computation. Never raises on missing or partial data: an axis
that cannot be judged scores a neutral 50 with ``compatible=None``.

overall_compatible = skills >= 50 and no other axis is explicitly False.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from dealflow.models.opportunity import Opportunity
from dealflow.policy.resolver import PolicyResolver

NEUTRAL_SCORE = 50


@dataclass(frozen=True)
class MirrorResult:
    """Outcome of one mirroring axis.

    ``compatible`` is None when there was not enough data to judge.
    """
    compatible: Optional[bool]
    score: int
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MirrorReport:
    skills: MirrorResult
    budget: MirrorResult
    timeline: MirrorResult
    location: MirrorResult
    overall_compatible: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            axis: {"compatible": r.compatible, "score": r.score}
            for axis, r in (
                ("skills", self.skills),
                ("budget", self.budget),
                ("timeline", self.timeline),
                ("location", self.location),
            )
        } | {"overall_compatible": self.overall_compatible}


def _neutral(reason: str) -> MirrorResult:
    return MirrorResult(compatible=None, score=NEUTRAL_SCORE, details={"reason": reason})


def skills_overlap(a: str, b: str) -> bool:
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


class SemanticMirror:
    """Scores a Need against an Offer along the four mirroring axes.

    Usage:
        mirror = SemanticMirror(resolver)
        report = mirror.apply_all(need, offer)
        if report.overall_compatible: ...

    Reverse mirroring (Offer→Need) is ``apply_all(offer, need)``.
    """

    def __init__(self, resolver: Optional[PolicyResolver] = None) -> None:
        self._config = (resolver or PolicyResolver()).mirroring_config()

    def mirror_skills(self, need: Opportunity, offer: Opportunity) -> MirrorResult:
        required = [s for s in need.attributes.required_skills if s.strip()]
        available = list(offer.attributes.available_skills or offer.attributes.required_skills)

        matched = [r for r in required if any(skills_overlap(r, a) for a in available)]
        unmatched = [r for r in required if r not in matched]
        score = round(len(matched) / len(required) * 100) if required else 100

        return MirrorResult(
            compatible=score >= self._config["skills_compatible_cutoff"],
            score=score,
            details={"matched": matched, "unmatched": unmatched},
        )

    def mirror_budget(self, need: Opportunity, offer: Opportunity) -> MirrorResult:
        budget = need.attributes.budget_range
        rate = offer.attributes.budget_range
        if budget is None or (budget.min <= 0 and budget.max <= 0):
            return _neutral("Need budget not specified")
        if rate is None or (rate.min <= 0 and rate.max <= 0):
            return _neutral("Offer rate not specified")

        # A range with only its minimum filled in is a point at that minimum.
        b_min, r_min = float(budget.min), float(rate.min)
        b_max, r_max = float(budget.max) or b_min, float(rate.max) or r_min
        if b_min > b_max:
            return _neutral("Need budget range is inverted")
        if r_min > r_max:
            return _neutral("Offer rate range is inverted")

        details: dict[str, Any] = {
            "need_budget_center": (b_min + b_max) / 2,
            "offer_rate_center": (r_min + r_max) / 2,
        }

        if b_min <= r_min and r_max <= b_max:
            return MirrorResult(True, 100, details | {"match": "contained"})

        if r_min <= b_max and r_max >= b_min:
            overlap = min(r_max, b_max) - max(r_min, b_min)
            need_range = b_max - b_min
            if need_range > 0:
                score = round(overlap / need_range * 100)
            else:
                score = self._config["budget_point_overlap_score"]
            return MirrorResult(True, max(0, min(100, score)), details | {"match": "overlap"})

        b_center = details["need_budget_center"]
        difference = abs(b_center - details["offer_rate_center"])
        need_range = (b_max - b_min) or b_center
        pct = difference / need_range * 100 if need_range > 0 else 0.0
        details |= {"match": "proximity", "percentage_difference": pct}

        cutoff = self._config["budget_proximity_cutoff_pct"]
        if pct <= cutoff:
            return MirrorResult(True, round(max(50.0, 100 - pct * 2)), details)
        return MirrorResult(False, round(max(0.0, 50 - (pct - cutoff))), details)

    def mirror_timeline(self, need: Opportunity, offer: Opportunity) -> MirrorResult:
        timeline = need.attributes.timeline
        avail = offer.attributes.availability
        need_start = timeline.start_date if timeline else None
        duration = (timeline.duration_days or 0) if timeline else 0
        offer_start = avail.start_date if avail else None
        offer_end = avail.end_date if avail else None

        if need_start is None and offer_start is None:
            return _neutral("Timeline/availability not specified")

        slack_days = self._config["timeline_slack_days"]
        score = 0.0
        verdicts: list[bool] = []
        details: dict[str, Any] = {}

        # Start alignment (up to 50)
        if need_start is not None and offer_start is not None:
            days_late = (offer_start - need_start).days
            details["days_late"] = max(0, days_late)
            if days_late <= 0:
                score += 50
                verdicts.append(True)
            elif days_late <= slack_days:
                score += max(30, 50 - days_late)
                verdicts.append(True)
            else:
                score += max(0.0, 30 - (days_late - slack_days) * 0.5)
                verdicts.append(False)
        else:
            score += 25

        # Duration coverage (up to 50)
        if duration > 0 and need_start is not None and offer_end is not None:
            need_end = timeline.end_date
            if offer_end >= need_end:
                score += 50
                verdicts.append(True)
            else:
                overlap_days = (offer_end - need_start).days
                ratio = overlap_days / duration
                details["coverage_ratio"] = ratio
                score += max(0.0, ratio * 50)
                verdicts.append(False)
        elif avail is not None and avail.lead_time_days is not None:
            score += 30
        else:
            score += 25

        compatible: Optional[bool] = any(verdicts) if verdicts else None
        return MirrorResult(compatible, min(100, round(score)), details)

    def mirror_location(self, need: Opportunity, offer: Opportunity) -> MirrorResult:
        need_loc = need.attributes.location
        offer_loc = offer.attributes.location
        if need_loc is None or offer_loc is None:
            return _neutral("Location not specified")

        scores = self._config["location_scores"]

        def _same(a: Optional[str], b: Optional[str]) -> Optional[bool]:
            if not a or not b:
                return None
            return a.strip().lower() == b.strip().lower()

        if _same(need_loc.city, offer_loc.city):
            return MirrorResult(True, scores["city"], {"match": "city"})
        if _same(need_loc.region, offer_loc.region):
            return MirrorResult(True, scores["region"], {"match": "region"})

        country = _same(need_loc.country, offer_loc.country)
        compatible: Optional[bool]
        if country is None:
            compatible, score, match = None, NEUTRAL_SCORE, "unknown"
        elif country:
            compatible, score, match = True, scores["country"], "country"
        else:
            compatible, score, match = False, scores["mismatch"], "none"

        if need_loc.is_remote_allowed and offer_loc.is_remote_allowed:
            score = max(score, self._config["remote_floor"])
            compatible = True
            match = "remote" if match in ("none", "unknown") else match

        return MirrorResult(compatible, score, {"match": match})

    def apply_all(self, need: Opportunity, offer: Opportunity) -> MirrorReport:
        skills = self.mirror_skills(need, offer)
        budget = self.mirror_budget(need, offer)
        timeline = self.mirror_timeline(need, offer)
        location = self.mirror_location(need, offer)
        overall = (
            skills.score >= self._config["skills_compatible_cutoff"]
            and budget.compatible is not False
            and timeline.compatible is not False
            and location.compatible is not False
        )
        return MirrorReport(skills, budget, timeline, location, overall)
