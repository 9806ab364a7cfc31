"""Tests for the session state transitions."""
from paperpharmacy import session
from paperpharmacy.config import Config
from paperpharmacy.assembler import purchase_links
from paperpharmacy.models import BookRecommendation, Location, UserInput


def book(title, isbn=""):
    return BookRecommendation(
        title=title, author="작가", publisher="", isbn=isbn, description="",
        ai_reason="", vibe=[], libraries=[], purchase_links=purchase_links(title),
    )


def test_submit_requires_mood():
    """Test an empty mood produces an error and no request."""
    state, request = session.submit(session.SessionState(), UserInput(mood=""))

    assert request is None
    assert state.error == session.MISSING_MOOD_MESSAGE
    assert not state.loading


def test_submit_builds_request():
    """Test a valid submit starts loading and carries the inputs."""
    state, request = session.submit(session.SessionState(), UserInput(mood="우울함"))

    assert state.loading
    assert request.user_input.mood == "우울함"
    assert request.region == session.DEFAULT_REGION
    assert request.exclude_titles == ()


def test_busy_flag_blocks_resubmission():
    """Test nothing starts while a run is in flight."""
    state, _ = session.submit(session.SessionState(), UserInput(mood="우울함"))

    again, request = session.submit(state, UserInput(mood="기쁨"))

    assert request is None
    assert again is state
    assert session.regenerate(state)[1] is None


def test_received_merges_history():
    """Test results replace the list and extend history without duplicates."""
    state, _ = session.submit(session.SessionState(), UserInput(mood="우울함"))
    state = session.recommendations_received(state, [book("A", "1"), book("B"), book("C")])

    assert not state.loading
    assert state.show_regenerate
    assert [r.title for r in state.recommendations] == ["A", "B", "C"]

    state, _ = session.regenerate(state)
    state = session.recommendations_received(state, [book("A", "1"), book("D"), book("E")])

    assert [r.title for r in state.history] == ["A", "B", "C", "D", "E"]
    assert [r.title for r in state.recommendations] == ["A", "D", "E"]


def test_regenerate_excludes_history_titles():
    """Test regenerate passes every historical title as the exclusion list."""
    state, _ = session.submit(session.SessionState(), UserInput(mood="우울함"))
    state = session.recommendations_received(state, [book("A"), book("B"), book("C")])

    state, request = session.regenerate(state)

    assert request.exclude_titles == ("A", "B", "C")
    assert state.recommendations == ()


def test_failure_shows_error_without_results():
    """Test a failed batch clears results and hides regenerate."""
    state, _ = session.submit(session.SessionState(), UserInput(mood="우울함"))
    state = session.recommendations_failed(state, "실패")

    assert state.error == "실패"
    assert state.recommendations == ()
    assert not state.show_regenerate
    assert not state.loading

    assert session.recommendations_failed(state, None).error == session.UNKNOWN_ERROR_MESSAGE


def test_nationwide_region():
    """Test the nationwide toggle overrides the selected region."""
    state = session.select_region(session.SessionState(), "부산", nationwide=True)
    state, request = session.submit(state, UserInput(mood="설렘"))

    assert request.region == session.NATIONWIDE_REGION


def test_location_resolved():
    """Test a resolved location is sent and clears nationwide."""
    state = session.select_region(session.SessionState(), "부산", nationwide=True)
    state = session.request_location(state)
    assert state.locating

    state = session.location_resolved(state, 37.5, 127.0)
    assert not state.locating
    assert not state.nationwide

    state, request = session.submit(state, UserInput(mood="설렘"))
    assert request.location == Location(37.5, 127.0)
    assert request.region == "부산"


def test_location_failed_messages():
    """Test each geolocation error code maps to a message."""
    state = session.request_location(session.SessionState())

    denied = session.location_failed(state, session.PERMISSION_DENIED)
    assert not denied.locating
    assert denied.error.endswith("위치 정보 접근 권한을 허용해주세요.")
    assert session.location_failed(state, session.TIMEOUT).error.endswith("요청 시간이 초과되었어요.")
    assert session.location_failed(state, 99).error.endswith(session.UNKNOWN_ERROR_MESSAGE)

    # The region selector still works afterwards
    denied, request = session.submit(denied, UserInput(mood="평온"))
    assert request.region == session.DEFAULT_REGION
    assert request.location is None


def test_location_unsupported():
    state = session.request_location(session.SessionState(), supported=False)

    assert state.error == session.LOCATION_UNSUPPORTED_MESSAGE
    assert not state.locating


def test_location_failure_drops_previous_location():
    """Test a failed retry forgets the old coordinates and falls back to the region."""
    state = session.request_location(session.SessionState())
    state = session.location_resolved(state, 37.5, 127.0)

    state = session.request_location(state)
    state = session.location_failed(state, session.PERMISSION_DENIED)

    assert state.location is None
    state, request = session.submit(state, UserInput(mood="평온"))
    assert request.location is None
    assert request.region == session.DEFAULT_REGION


def test_default_region_comes_from_config():
    assert session.DEFAULT_REGION == Config.DEFAULT_REGION
    assert session.SessionState().region == Config.DEFAULT_REGION
