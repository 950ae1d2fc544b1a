from conftest import FakePlayer


def test_position_observers_can_be_removed():
    player = FakePlayer()
    seen = []
    token = player.add_position_observer(seen.append)

    player.report(1.5)
    player.remove_position_observer(token)
    player.report(2.5)

    assert seen == [1.5]
    assert player.current_time == 2.5


def test_playing_observers_only_see_changes():
    player = FakePlayer()
    seen = []
    player.add_playing_observer(seen.append)

    player.play()
    player.play()
    player.toggle_play()

    assert seen == [True, False]


def test_skip_is_clamped_to_duration():
    player = FakePlayer()
    player.duration = 10.0
    player.current_time = 9.8

    player.skip(0.333)
    player.skip(-20.0)

    assert player.seeks() == [10.0, 0.0]


def test_clamp_before_duration_is_known():
    player = FakePlayer()
    assert player.clamp_time(42.0) == 42.0
    assert player.clamp_time(-1.0) == 0.0
