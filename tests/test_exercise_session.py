import json

import pytest

from session_engine.completion import ExerciseTemplate
from session_engine.exercise_session import ExerciseSession
from session_engine.settings import FeatureConfig


class Recorder:
    """Collects every event an :class:`ExerciseSession` dispatches."""

    def __init__(self, session):
        self.totals = []
        self.states = []
        self.timer_starts = []
        self.feedback = []
        self.focus = []
        session.bind(
            on_update_totals=lambda inst, ex_id, volume, count: self.totals.append((ex_id, volume, count)),
            on_state_change=lambda inst, snapshot: self.states.append(snapshot),
            on_timer_start=lambda inst, seconds: self.timer_starts.append(seconds),
            on_feedback=lambda inst, kind: self.feedback.append(kind),
            on_focus_request=lambda inst, set_id, field: self.focus.append((set_id, field)),
        )


@pytest.fixture
def set_mode():
    return FeatureConfig(timer_type="set")


def test_seeded_from_previous(previous, clock):
    session = ExerciseSession(7, previous=previous, clock=clock)
    assert [s.id for s in session.sets] == ["1", "2"]
    assert all(s.weight == "" for s in session.sets)
    assert ExerciseSession(7, clock=clock).sets[0].id == "1"


def test_add_add_delete_scenario(clock):
    session = ExerciseSession(1, initial_state={"sets": []}, clock=clock)
    assert session.sets == []

    first = session.add_set()
    second = session.add_set()
    assert (first.id, second.id) == ("1", "2")
    assert first.key != second.key

    session.delete_set("1")
    assert [(s.id, s.key) for s in session.sets] == [("1", second.key)]


def test_completion_starts_exercise_rest_timer(clock):
    session = ExerciseSession(1, clock=clock)
    events = Recorder(session)
    session.set_weight("1", "100")
    session.set_reps("1", "5")
    session.toggle_completion(0)

    assert events.timer_starts == [150]
    assert events.feedback == ["success"]
    assert events.totals == [(1, 500, 1)]


def test_completion_uses_selected_rest_time(clock):
    session = ExerciseSession(1, clock=clock)
    events = Recorder(session)
    session.select_rest_time(90)
    session.adjust_rest_time(10)
    session.toggle_completion(0)
    assert events.timer_starts == [100]


def test_uncomplete_updates_totals(clock):
    session = ExerciseSession(1, clock=clock)
    events = Recorder(session)
    session.set_weight("1", "40")
    session.set_reps("1", "10")
    session.toggle_completion(0)
    session.toggle_completion(0)
    assert events.totals == [(1, 400, 1), (1, 0, 0)]
    assert events.feedback == ["success", "light"]


def test_state_change_emitted_once_per_change(clock):
    session = ExerciseSession(1, clock=clock)
    events = Recorder(session)
    session.sync()
    session.set_weight("1", "50")
    session.set_weight("1", "50")
    session.set_weight("1", "50abc")
    session.set_notes("")
    assert len(events.states) == 2
    assert events.states[-1]["sets"][0]["weight"] == "50"
    json.dumps(events.states[-1])


def test_warmup_excluded_from_totals(clock):
    state = {
        "sets": [
            {"id": "W", "key": "set-1", "weight": "20", "reps": "10", "total": "200"},
            {"id": "1", "key": "set-2"},
        ]
    }
    session = ExerciseSession(1, initial_state=state, clock=clock)
    events = Recorder(session)
    session.toggle_completion(0)
    assert events.totals == []
    assert session.totals == (0, 0)


def test_focus_moves_after_commit(clock):
    session = ExerciseSession(1, initial_state={"sets": [{"id": "1"}, {"id": "2"}, {"id": "3"}]}, clock=clock)
    events = Recorder(session)
    session.toggle_completion(1)
    session.toggle_completion(0, focused=True)
    assert events.focus == []
    assert len(events.states) == 2

    clock.advance(0.1)
    assert events.focus == [("3", "weight")]


def test_focus_not_requested_without_focus(clock):
    session = ExerciseSession(1, initial_state={"sets": [{"id": "1"}, {"id": "2"}]}, clock=clock)
    events = Recorder(session)
    session.toggle_completion(0)
    clock.advance(1)
    assert events.focus == []


def test_close_cancels_pending_focus(clock):
    session = ExerciseSession(1, initial_state={"sets": [{"id": "1"}, {"id": "2"}]}, clock=clock)
    events = Recorder(session)
    session.toggle_completion(0, focused=True)
    session.close()
    clock.advance(1)
    assert events.focus == []


def test_set_mode_completion_runs_countdown(clock, set_mode):
    session = ExerciseSession(1, config=set_mode, clock=clock)
    events = Recorder(session)
    session.set_timer_change("1", "5")
    session.toggle_completion(0)
    assert session.active_set_id == "1"
    assert events.timer_starts == []

    clock.advance(5)
    assert session.active_set_id is None
    assert events.feedback == ["success", "success"]
    assert session.set_timers["1"] == "00:05"
    assert events.states[-1]["set_timers"]["1"] == "00:05"


def test_set_mode_single_active_timer(clock, set_mode):
    session = ExerciseSession(1, initial_state={"sets": [{"id": "1"}, {"id": "2"}]}, config=set_mode, clock=clock)
    session.toggle_completion(0)
    clock.advance(1)
    session.toggle_completion(1)
    assert session.active_set_id == "2"
    assert "1" not in session.timers.remaining


def test_set_mode_uncomplete_stops_timer(clock, set_mode):
    session = ExerciseSession(1, config=set_mode, clock=clock)
    session.toggle_completion(0)
    session.toggle_completion(0)
    assert session.active_set_id is None
    assert clock.pending == []


def test_set_timer_scenario(clock, set_mode):
    session = ExerciseSession(1, config=set_mode, clock=clock)
    assert session.set_timers == {"1": "3:00"}
    assert session.set_timer_change("1", "930") == "9:30"
    assert session.set_timers["1"] == "9:30"
    assert session.set_timer_change("1", "30") == "30"
    assert session.set_timers["1"] == "30"


def test_new_set_inherits_timer(clock, set_mode):
    session = ExerciseSession(1, config=set_mode, clock=clock)
    session.set_timer_change("1", "130")
    session.add_set()
    assert session.set_timers == {"1": "1:30", "2": "1:30"}


def test_delete_keeps_timers_with_their_sets(clock, set_mode):
    session = ExerciseSession(1, config=set_mode, clock=clock)
    session.add_set()
    session.add_set()
    session.set_timer_change("2", "200")
    session.set_timer_change("3", "300")
    session.delete_set("1")
    assert session.set_timers == {"1": "2:00", "2": "3:00"}
    session.add_set()
    assert session.set_timers["3"] == "3:00"


def test_restore_round_trip(previous, clock):
    session = ExerciseSession(1, previous=previous, clock=clock)
    session.set_weight("1", "60")
    session.set_notes("easy")
    restored = ExerciseSession.from_dict(1, session.to_dict(), clock=clock)
    assert restored.to_dict() == session.to_dict()
    assert restored.add_set().key == "set-3"


def test_switching_out_of_set_mode_stops_countdown(clock, set_mode):
    session = ExerciseSession(1, config=set_mode, clock=clock)
    session.toggle_completion(0)
    session.apply_config(FeatureConfig())
    assert session.active_set_id is None
    assert clock.pending == []


def test_hints_follow_template(previous, clock):
    template = ExerciseTemplate(rep_range_min=8, rep_range_max=12)
    session = ExerciseSession(1, template=template, previous=previous, clock=clock)
    assert session.hints(1) == {"weight": "62.5", "reps": "8-12", "rir": "0"}


def test_toggle_unknown_index_raises(clock):
    session = ExerciseSession(1, clock=clock)
    with pytest.raises(IndexError):
        session.toggle_completion(5)


def test_toggle_negative_index_raises(clock):
    session = ExerciseSession(1, initial_state={"sets": [{"id": "1"}, {"id": "2"}]}, clock=clock)
    events = Recorder(session)
    with pytest.raises(IndexError):
        session.toggle_completion(-1)
    assert not any(s.completed for s in session.sets)
    assert events.states == []


def test_restored_empty_sets_are_not_seeded(previous, clock):
    session = ExerciseSession(1, initial_state={"sets": [], "notes": "x"}, previous=previous, clock=clock)
    events = Recorder(session)
    session.sync()
    assert session.sets == []
    assert events.states == [{"sets": [], "notes": "x", "set_timers": {}}]
    assert session.add_set().id == "1"


def test_state_without_sets_is_seeded(previous, clock):
    session = ExerciseSession(1, initial_state={"notes": "x"}, previous=previous, clock=clock)
    assert [s.id for s in session.sets] == ["1", "2"]
    assert session.notes == "x"


def test_rest_time_comes_from_config(clock):
    session = ExerciseSession(1, config=FeatureConfig(rest_time=90), clock=clock)
    events = Recorder(session)
    session.toggle_completion(0)
    assert events.timer_starts == [90]
    assert ExerciseSession(1, config=FeatureConfig(rest_time=90), rest_time=60, clock=clock).rest_timer.rest_time == 60


def test_from_history_uses_weight_unit(clock):
    history = [{"sets": [{"weight": 60, "reps": 10}]}]
    session = ExerciseSession.from_history(1, history, config=FeatureConfig(weight_unit="lbs"), clock=clock)
    assert [s.id for s in session.sets] == ["1"]
    assert session.hints(0)["weight"] == "132.5"
    session.toggle_completion(0)
    assert session.sets[0].weight == "132.5"


def test_timer_edit_ignored_in_exercise_mode(clock):
    session = ExerciseSession(1, clock=clock)
    assert session.set_timer_change("1", "930") is None
    assert session.to_dict()["set_timers"] == {}
