"""Resolver configuration.

Environment Variables:
    WORKFLOW_VARIABLES_ON_UNRESOLVED: What to substitute for a reference whose
        value is unresolved: "literal" (the text "undefined"), "empty",
        "keep" (leave the {{...}} token), or "raise". Default: "literal".
    WORKFLOW_VARIABLES_DATE_FORMAT: Template used by dateFormat when called
        without an argument. Default: "MM/DD/YYYY".
"""

import logging
import os
from enum import Enum

from pydantic import BaseModel, Field

from .transformations import DEFAULT_DATE_FORMAT

logger = logging.getLogger(__name__)

ENV_ON_UNRESOLVED = "WORKFLOW_VARIABLES_ON_UNRESOLVED"
ENV_DATE_FORMAT = "WORKFLOW_VARIABLES_DATE_FORMAT"


class OnUnresolved(str, Enum):
    """Substitution policy for references that resolve to UNDEFINED."""

    LITERAL = "literal"  # Substitute the text "undefined"
    EMPTY = "empty"  # Substitute an empty string
    KEEP = "keep"  # Leave the original {{...}} token in place
    RAISE = "raise"  # Raise UnresolvedReferenceError


class ResolverConfig(BaseModel):
    """Configuration for VariableResolver."""

    on_unresolved: OnUnresolved = Field(
        default=OnUnresolved.LITERAL,
        description="Substitution policy for unresolved references",
    )
    date_format: str = Field(
        default=DEFAULT_DATE_FORMAT,
        min_length=1,
        description="Default dateFormat template",
    )

    @classmethod
    def from_env(cls) -> "ResolverConfig":
        """
        Build configuration from environment variables.

        Invalid values are logged and replaced by their defaults.

        Returns:
            ResolverConfig populated from WORKFLOW_VARIABLES_* variables
        """
        policy_str = os.getenv(ENV_ON_UNRESOLVED, OnUnresolved.LITERAL.value).strip().lower()
        try:
            on_unresolved = OnUnresolved(policy_str)
        except ValueError:
            valid = ", ".join(p.value for p in OnUnresolved)
            logger.warning(
                f"Invalid {ENV_ON_UNRESOLVED} '{policy_str}'. Valid values: {valid}. Using literal."
            )
            on_unresolved = OnUnresolved.LITERAL

        date_format = os.getenv(ENV_DATE_FORMAT, "").strip() or DEFAULT_DATE_FORMAT

        return cls(on_unresolved=on_unresolved, date_format=date_format)


__all__ = ["ENV_DATE_FORMAT", "ENV_ON_UNRESOLVED", "OnUnresolved", "ResolverConfig"]
