"""
Per-session application state.

``SessionState`` is an immutable snapshot. Every user action or pipeline
outcome is a function that takes a snapshot and returns the next one, so the
whole flow can be driven (and tested) without a UI.

    state = SessionState()
    state, request = submit(state, UserInput(mood="우울함"))
    books = await assemble(request.user_input, request.region, request.exclude_titles, request.location, ...)
    state = recommendations_received(state, books)
"""
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

from paperpharmacy.config import Config
from paperpharmacy.history import history_titles, merge_history, with_id
from paperpharmacy.models import BookRecommendation, BookRecommendationWithId, Location, UserInput

NATIONWIDE_REGION = "대한민국 전국 주요 도시"
DEFAULT_REGION = Config.DEFAULT_REGION

MISSING_MOOD_MESSAGE = "현재 기분을 선택해주세요."
UNKNOWN_ERROR_MESSAGE = "알 수 없는 오류가 발생했습니다."

# Browser GeolocationPositionError codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

_LOCATION_ERROR_PREFIX = "위치 정보를 가져오는 데 실패했어요. "
_LOCATION_ERROR_DETAILS = {
    PERMISSION_DENIED: "위치 정보 접근 권한을 허용해주세요.",
    POSITION_UNAVAILABLE: "현재 위치를 확인할 수 없어요.",
    TIMEOUT: "요청 시간이 초과되었어요.",
}
LOCATION_UNSUPPORTED_MESSAGE = "이 브라우저에서는 위치 서비스를 지원하지 않아요."


@dataclass(frozen=True)
class RecommendationRequest:
    """Arguments for one pipeline run, captured when the run starts."""
    user_input: UserInput
    region: str
    exclude_titles: Tuple[str, ...] = ()
    location: Optional[Location] = None


@dataclass(frozen=True)
class SessionState:
    user_input: UserInput = field(default_factory=lambda: UserInput(mood=""))
    region: str = DEFAULT_REGION
    nationwide: bool = False
    location: Optional[Location] = None
    recommendations: Tuple[BookRecommendationWithId, ...] = ()
    history: Tuple[BookRecommendationWithId, ...] = ()
    loading: bool = False
    locating: bool = False
    error: Optional[str] = None
    show_regenerate: bool = False

    @property
    def busy(self) -> bool:
        return self.loading


def effective_region(state: SessionState) -> str:
    return NATIONWIDE_REGION if state.nationwide else state.region


def select_region(state: SessionState, region: str, nationwide: bool = False) -> SessionState:
    return replace(state, region=region, nationwide=nationwide)


def _start(state: SessionState, exclude_titles: Sequence[str]) -> Tuple[SessionState, Optional[RecommendationRequest]]:
    if state.busy:
        return state, None
    if not state.user_input.mood:
        return replace(state, error=MISSING_MOOD_MESSAGE), None

    request = RecommendationRequest(
        user_input=state.user_input,
        region=effective_region(state),
        exclude_titles=tuple(exclude_titles),
        location=state.location,
    )
    next_state = replace(state, loading=True, error=None, recommendations=())
    return next_state, request


def submit(
    state: SessionState,
    user_input: Optional[UserInput] = None
) -> Tuple[SessionState, Optional[RecommendationRequest]]:
    """
    Start a fresh batch.

    Returns:
        (next state, request to run). The request is None while another run
        is in flight or when no mood was given.
    """
    if user_input is not None and not state.busy:
        state = replace(state, user_input=user_input)
    return _start(state, ())


def regenerate(state: SessionState) -> Tuple[SessionState, Optional[RecommendationRequest]]:
    """Start a batch that asks the model to avoid every title seen so far."""
    return _start(state, history_titles(state.history))


def recommendations_received(state: SessionState, batch: Sequence[BookRecommendation]) -> SessionState:
    records = tuple(with_id(book) for book in batch)
    return replace(
        state,
        recommendations=records,
        history=tuple(merge_history(state.history, records)),
        loading=False,
        error=None,
        show_regenerate=True,
    )


def recommendations_failed(state: SessionState, message: Optional[str]) -> SessionState:
    return replace(
        state,
        recommendations=(),
        loading=False,
        error=message or UNKNOWN_ERROR_MESSAGE,
        show_regenerate=False,
    )


def request_location(state: SessionState, supported: bool = True) -> SessionState:
    if not supported:
        return replace(state, error=LOCATION_UNSUPPORTED_MESSAGE)
    return replace(state, locating=True, error=None)


def location_resolved(state: SessionState, latitude: float, longitude: float) -> SessionState:
    return replace(
        state,
        location=Location(latitude=latitude, longitude=longitude),
        nationwide=False,
        locating=False,
    )


def location_failed(state: SessionState, code: int) -> SessionState:
    """Record a geolocation failure; any earlier position is dropped and the region selector takes over."""
    detail = _LOCATION_ERROR_DETAILS.get(code, UNKNOWN_ERROR_MESSAGE)
    return replace(state, location=None, locating=False, error=_LOCATION_ERROR_PREFIX + detail)
