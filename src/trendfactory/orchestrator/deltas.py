"""Delta application: the only sanctioned way to mutate project state."""

import logging

from pydantic import ValidationError

from ..errors import DeltaValidationError, IllegalDeltaError, SceneNotFoundError
from ..models import (
    DELTA_STAGE,
    Delta,
    DeltaKind,
    EscalationPlanned,
    ProjectState,
    SceneVideoGenerated,
    SceneVisualized,
    TrendQualityAssessed,
    TrendSynthesized,
)
from ..models.delta import SCENE_DELTA_KEYS
from .store import StateStore

logger = logging.getLogger(__name__)


def apply_delta(state: ProjectState, delta: Delta, store: StateStore) -> ProjectState:
    """Apply one delta, validate the result, persist it and return it.

    Args:
        state: The current committed state.
        delta: The mutation to apply.
        store: Store that receives the new state.

    Returns:
        The new state as persisted.

    Raises:
        IllegalDeltaError: If the delta is not legal in ``state.stage``. The
            state file is not touched.
        SceneNotFoundError: If a per-scene delta names an unknown scene.
        DeltaValidationError: If the resulting state does not validate.
    """
    kind = DeltaKind(delta.kind)
    required = DELTA_STAGE[kind]
    if state.stage != required:
        raise IllegalDeltaError(kind.value, state.stage.value, required.value)

    data = state.model_dump()

    if isinstance(delta, TrendSynthesized):
        data["pattern_analysis"] = delta.pattern_analysis.model_dump()
        data["trend"] = delta.trend.model_dump()

    elif isinstance(delta, TrendQualityAssessed):
        data["trend_quality"] = delta.trend_quality.model_dump()
        if not delta.trend_quality.passes_threshold:
            data["regeneration_count"] = state.regeneration_count + 1

    elif isinstance(delta, EscalationPlanned):
        data["scenes"] = [scene.model_dump() for scene in delta.scenes]
        data["global_continuity"] = delta.global_continuity.model_dump()

    elif isinstance(delta, (SceneVisualized, SceneVideoGenerated)):
        index = state.scene_index(delta.scene_id)
        if index is None:
            raise SceneNotFoundError(delta.scene_id)
        fields = delta.model_dump(exclude_unset=True, exclude=SCENE_DELTA_KEYS)
        data["scenes"][index].update(fields)

    else:
        raise TypeError(f"Unknown delta type: {type(delta).__name__}")

    try:
        new_state = ProjectState.model_validate(data)
    except ValidationError as e:
        raise DeltaValidationError.from_validation_error(
            f"{kind.value} would produce an invalid state",
            e,
            payload=delta.model_dump(mode="json", by_alias=True),
        ) from e

    saved = store.save(new_state)
    logger.debug(f"Applied {kind.value} in stage {state.stage.value}")
    return saved
