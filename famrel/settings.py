"""Configuration settings for famrel, loaded from environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    """Settings for the decision diagram layer and the analysis session.

    The variable order fixes the BDD levels of the named features before any
    formula is encoded; features not listed are declared in order of first
    appearance.
    """

    model_config = SettingsConfigDict(
        env_prefix="FAMREL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    variable_order: list[str] = Field(
        default_factory=list,
        description="Feature variables to declare first, in BDD level order.",
    )
    terminal_precision: int | None = Field(
        default=12,
        description="Decimal digits terminal values are rounded to; None keeps them exact.",
    )
    dynamic_reordering: bool = Field(
        default=False,
        description="Whether the BDD manager may reorder variables dynamically.",
    )
    export_label: str = Field(
        default="Family Reliability",
        description="Graph label used when exporting a reliability diagram.",
    )

    @field_validator("terminal_precision")
    @classmethod
    def check_precision(cls, v: int | None) -> int | None:
        """Reject negative rounding precision."""
        if v is not None and v < 0:
            msg = f"terminal_precision must be non-negative, got {v}."
            raise ValueError(msg)
        return v


# Singleton instance for application-wide use
analysis_settings = AnalysisSettings()
