"""External tool integrations."""

from ralph.integrations.git_ops import GitOps, normalize_repo_url

__all__ = ["GitOps", "normalize_repo_url"]
