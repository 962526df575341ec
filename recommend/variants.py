"""Request variants of the recommendation pipeline.

Every variant runs the same state machine; a variant only decides how the
prompt is built and which exclude/bias list is folded into the preferences.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from recommend.models import PreferenceSpec, PreviousRecommendation
from services.prompts import (
    build_different_prompt,
    build_recommendation_prompt,
    build_similar_prompt,
)


class VariantName(StrEnum):
    """Names used in logs and telemetry."""

    DEFAULT = "default"
    """Plain preference-driven recommendations."""

    DIFFERENT = "different"
    """Fresh titles, excluding the ones just shown."""

    SIMILAR = "similar"
    """Titles biased toward the themes of the ones just shown."""


PromptBuilder = Callable[[list[PreviousRecommendation], PreferenceSpec], str]
"""Builds the prompt from the previous results and the (folded) preferences."""

SpecTransform = Callable[[list[PreviousRecommendation], PreferenceSpec], PreferenceSpec]
"""Folds the previous results into the preferences."""


def _default_prompt(previous: list[PreviousRecommendation], spec: PreferenceSpec) -> str:
    return build_recommendation_prompt(spec)


def _unchanged(previous: list[PreviousRecommendation], spec: PreferenceSpec) -> PreferenceSpec:
    return spec


def _exclude_previous(
    previous: list[PreviousRecommendation], spec: PreferenceSpec
) -> PreferenceSpec:
    return spec.with_exclusions(
        [item.title for item in previous],
        [item.id for item in previous if item.id is not None],
    )


def _bias_toward_previous(
    previous: list[PreviousRecommendation], spec: PreferenceSpec
) -> PreferenceSpec:
    # The shown titles are still excluded; "similar" never repeats them
    return _exclude_previous(previous, spec.with_similar([item.title for item in previous]))


@dataclass(frozen=True)
class RecommendationVariant:
    """Declarative description of one pipeline variant."""

    name: VariantName
    build_prompt: PromptBuilder
    transform_spec: SpecTransform
    requires_previous: bool = False
    """Reject the request when no previous results are supplied."""


DEFAULT_VARIANT = RecommendationVariant(
    name=VariantName.DEFAULT,
    build_prompt=_default_prompt,
    transform_spec=_unchanged,
)

DIFFERENT_VARIANT = RecommendationVariant(
    name=VariantName.DIFFERENT,
    build_prompt=build_different_prompt,
    transform_spec=_exclude_previous,
    requires_previous=True,
)

SIMILAR_VARIANT = RecommendationVariant(
    name=VariantName.SIMILAR,
    build_prompt=build_similar_prompt,
    transform_spec=_bias_toward_previous,
    requires_previous=True,
)
