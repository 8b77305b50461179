"""Request normalization and the completion orchestrator."""

from neorium.core.completions import Completions
from neorium.core.normalizer import normalize_request

__all__ = ["Completions", "normalize_request"]
