"""Result records as exported to results.json.

Field names follow the tidy-results convention of the visualization
consumer (``std.error``, ``cdf.x``, ...) through pydantic aliases; Python code
uses the snake_case names.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class ResultRecord(BaseModel):
    """Summary of one outcome term in one universe."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False, extra="ignore")

    term: str
    estimate: float
    std_error: float = Field(alias="std.error")
    cdf_x: tuple[float, ...] = Field(alias="cdf.x", description="Quantiles, ordered")
    cdf_y: tuple[float, ...] = Field(alias="cdf.y", description="Cumulative probabilities matching cdf.x")
    statistic: float | None = None
    p_value: float | None = Field(default=None, alias="p.value")
    conf_low: float | None = Field(default=None, alias="conf.low")
    conf_high: float | None = Field(default=None, alias="conf.high")

    @field_validator("cdf_x")
    @classmethod
    def _check_quantiles_ordered(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        if any(b < a for a, b in zip(value, value[1:], strict=False)):
            msg = "quantiles must be in increasing order"
            raise ValueError(msg)
        return value

    @field_validator("cdf_y")
    @classmethod
    def _check_probabilities(cls, value: tuple[float, ...], info: ValidationInfo) -> tuple[float, ...]:
        quantiles = info.data.get("cdf_x")
        if quantiles is not None and len(quantiles) != len(value):
            msg = f"has {len(value)} values but cdf.x has {len(quantiles)}"
            raise ValueError(msg)
        if any(not 0.0 <= p <= 1.0 for p in value):
            msg = "cumulative probabilities must lie in [0, 1]"
            raise ValueError(msg)
        if any(b < a for a, b in zip(value, value[1:], strict=False)):
            msg = "cumulative probabilities must be non-decreasing"
            raise ValueError(msg)
        return value

    def to_json_dict(self) -> dict[str, object]:
        """Serialize with consumer field names, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UniverseRecords(BaseModel):
    """All result records of one universe, in the order the pipeline produced them."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    universe: int = Field(alias=".universe", ge=1)
    results: tuple[ResultRecord, ...] = ()

    def to_json_dict(self) -> dict[str, object]:
        return {
            ".universe": self.universe,
            "results": [record.to_json_dict() for record in self.results],
        }
