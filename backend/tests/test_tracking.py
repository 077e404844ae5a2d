from order_sync.services.tracking import build_tracking_steps


def _flags(status_key):
    steps = build_tracking_steps(status_key)
    return [(s.key, s.completed, s.active) for s in steps]


def test_tracking_preparing():
    assert _flags("preparing") == [
        ("received", True, True),
        ("preparing", False, True),
        ("ready", False, False),
        ("delivered", False, False),
    ]


def test_tracking_ready():
    assert _flags("ready") == [
        ("received", True, False),
        ("preparing", True, False),
        ("ready", False, True),
        ("delivered", False, False),
    ]


def test_tracking_delivered():
    assert _flags("delivered") == [
        ("received", True, False),
        ("preparing", True, False),
        ("ready", True, False),
        ("delivered", True, False),
    ]


def test_tracking_unknown_renders_as_preparing():
    assert _flags("teleported") == _flags("preparing")
    assert _flags(None) == _flags("preparing")


def test_tracking_step_ids_are_sequential():
    assert [s.id for s in build_tracking_steps("ready")] == [1, 2, 3, 4]
