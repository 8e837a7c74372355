from utils.sessions import PendingOperation, SessionStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_pending_input_round_trip():
    sessions = SessionStore(ttl=60, clock=FakeClock())
    sessions.await_input("1001", PendingOperation.ADD_PAGE)
    assert sessions.pending("1001").operation == PendingOperation.ADD_PAGE
    assert sessions.pending("2002") is None
    assert sessions.complete("1001").operation == PendingOperation.ADD_PAGE
    assert sessions.pending("1001") is None


def test_new_request_replaces_previous_one():
    sessions = SessionStore(ttl=60, clock=FakeClock())
    sessions.await_input("1001", PendingOperation.ADD_PAGE)
    sessions.await_input("1001", PendingOperation.REMOVE_PAGE)
    assert sessions.pending("1001").operation == PendingOperation.REMOVE_PAGE


def test_pending_input_expires():
    clock = FakeClock()
    sessions = SessionStore(ttl=60, clock=clock)
    sessions.await_input("1001", PendingOperation.REMOVE_PAGE)
    clock.now += 61
    assert sessions.pending("1001") is None
    assert sessions.complete("1001") is None


def test_cancel():
    sessions = SessionStore(ttl=60, clock=FakeClock())
    assert sessions.cancel("1001") is False
    sessions.await_input("1001", PendingOperation.ADD_PAGE)
    assert sessions.cancel("1001") is True
    assert sessions.pending("1001") is None
