"""Policy configuration — JSON-backed tunables for the matching engines."""

from dealflow.policy.resolver import BaselineWeights, PolicyResolver

__all__ = ["BaselineWeights", "PolicyResolver"]
