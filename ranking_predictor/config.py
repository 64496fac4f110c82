"""
Configuration for the ranking prediction engine

ModelConstants holds the hand-calibrated formula constants, PredictionConfig
the per-item weights a caller assigns to each signal.
"""

import math
from functools import lru_cache
from types import MappingProxyType
from typing import Annotated, Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PrivateAttr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core import PredictionArea, PredictionItem


class ModelConstants(BaseSettings):
    """Tunable constants of the probability formulas"""

    model_config = SettingsConfigDict(env_prefix='RANKING_PREDICTOR_', frozen=True)

    # Deliberately worse than any real rank, so an unranked player is disadvantaged
    default_rank: int = Field(500, gt=0)
    default_rank_points: int = Field(10, gt=0)
    start_rating: int = Field(1500, gt=0)
    elo_scale: float = Field(400.0, gt=0)

    # Tuned for smallest Brier score and calibration near 1 on seasons 2005+
    rank_best_of_3_exponent: float = Field(0.6, gt=0)
    rank_best_of_5_exponent: float = Field(0.87, gt=0)
    rank_points_best_of_3_exponent: float = Field(0.77, gt=0)
    rank_points_best_of_5_exponent: float = Field(1.02, gt=0)

    h2h_full_weight_matches: int = Field(5, gt=0)

    @model_validator(mode="after")
    def _check_exponent_order(self) -> "ModelConstants":
        # Longer matches amplify the better player's edge
        if self.rank_best_of_5_exponent <= self.rank_best_of_3_exponent:
            raise ValueError(f"rank_best_of_5_exponent ({self.rank_best_of_5_exponent}) must be greater than "
                             f"rank_best_of_3_exponent ({self.rank_best_of_3_exponent})")
        if self.rank_points_best_of_5_exponent <= self.rank_points_best_of_3_exponent:
            raise ValueError(f"rank_points_best_of_5_exponent ({self.rank_points_best_of_5_exponent}) must be greater "
                             f"than rank_points_best_of_3_exponent ({self.rank_points_best_of_3_exponent})")
        return self

    def rank_exponent(self, best_of: int) -> float:
        return self.rank_best_of_3_exponent if best_of < 5 else self.rank_best_of_5_exponent

    def rank_points_exponent(self, best_of: int) -> float:
        return self.rank_points_best_of_3_exponent if best_of < 5 else self.rank_points_best_of_5_exponent


@lru_cache()
def get_model_constants() -> ModelConstants:
    return ModelConstants()


ItemWeights = Annotated[
    Mapping[PredictionItem, float],
    PlainSerializer(lambda weights: {item.value: weight for item, weight in weights.items()}),
]


class PredictionConfig(BaseModel):
    """
    Weight of each prediction item. Items that are not listed weigh 0.
    Weights are validated once, here, so prediction never sees a bad weight.
    """

    model_config = ConfigDict(frozen=True)

    item_weights: ItemWeights = Field(default_factory=lambda: MappingProxyType({}))

    _total_weight: float = PrivateAttr(default=0.0)

    @field_validator('item_weights', mode='before')
    @classmethod
    def _resolve_item_keys(cls, weights: Any) -> Any:
        if not isinstance(weights, Mapping):
            return weights
        return {_resolve_item(key): value for key, value in weights.items()}

    @field_validator('item_weights')
    @classmethod
    def _check_weights(cls, weights: Mapping[PredictionItem, float]) -> Mapping[PredictionItem, float]:
        for item, weight in weights.items():
            if not math.isfinite(weight):
                raise ValueError(f"Weight of {item.name} must be a finite number, got {weight}")
            if weight < 0.0:
                raise ValueError(f"Weight of {item.name} must not be negative, got {weight}")
        # Read-only copy, so total_weight cannot drift from the weights
        return MappingProxyType(dict(weights))

    def model_post_init(self, __context: Any) -> None:
        self._total_weight = sum(self.item_weights.values())

    @property
    def total_weight(self) -> float:
        return self._total_weight

    def item_weight(self, item: PredictionItem) -> float:
        return self.item_weights.get(item, 0.0)

    def area_weight(self, area: PredictionArea) -> float:
        return sum(weight for item, weight in self.item_weights.items() if item.area == area)

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, float]) -> 'PredictionConfig':
        """Build from a plain mapping, e.g. loaded from YAML/JSON ({'rank': 1.0, 'ELO': 2.0})"""
        return cls(item_weights=dict(mapping))

    @classmethod
    def equal_weights(cls, area: Optional[PredictionArea] = None) -> 'PredictionConfig':
        items = PredictionItem.for_area(area) if area else list(PredictionItem)
        return cls(item_weights={item: 1.0 for item in items})


def _resolve_item(key: Any) -> Any:
    if isinstance(key, PredictionItem) or not isinstance(key, str):
        return key
    name = key.strip()
    try:
        return PredictionItem[name.upper()]
    except KeyError:
        # Leave unknown keys to pydantic's enum validation error
        return name.lower()
