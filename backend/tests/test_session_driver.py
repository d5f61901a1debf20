import asyncio
import json
import threading

from conftest import TODAY
from rehab.engine import ButtonState, ExercisePlan, ExerciseSession, Phase, SessionRegistry, SignalKind
from rehab.schemas.exercise_settings import ExerciseKind, RepBasedSettings
from rehab.schemas.progress import ExerciseProgress
from rehab.services.day_history import DayHistoryStore
from rehab.services.progress_store import ProgressStore, exercises_key, progress_key

def quick_plan(exercise_type="curl_up", schema=(2, 1), rest=0, dual=False, name="Curl-up"):
    settings = RepBasedSettings(hold_time=1, reps_schema=list(schema), rest_time=rest)
    return ExercisePlan(exercise_type, ExerciseKind.hold, settings, dual_scheme=dual, exercise_name=name)

def make_session(store, config, plan=None, **kw):
    return ExerciseSession(plan or quick_plan(), date=TODAY, store=store, config=config, **kw).open()

def run_out(sess, limit=500):
    signals = []
    for _ in range(limit):
        if not sess.state.is_running:
            break
        signals += sess.tick()
    return signals

def test_full_run_completes_and_cleans_up(store, kv, config, clock):
    kv.data[exercises_key(TODAY)] = json.dumps([{"id": "curl_up", "completed": False}])
    seen_at_completion = {}

    def listener(signal):
        if signal.kind is SignalKind.completed:
            seen_at_completion["progress"] = progress_key("curl_up", TODAY) in kv.data
            seen_at_completion["daily"] = store.is_daily_completed("curl_up", TODAY)

    history = DayHistoryStore(kv)
    sess = make_session(store, config, history=history, listener=listener)
    assert sess.button_state is ButtonState.start

    sess.start()
    assert sess.state.phase is Phase.prepare
    signals = run_out(sess)

    assert sess.state.phase is Phase.completed
    assert not sess.state.is_running
    assert sess.button_state is ButtonState.completed
    assert signals[-1].kind is SignalKind.completed
    assert seen_at_completion == {"progress": False, "daily": True}

    # one entry for the first set at its rest, one for the whole exercise
    day = history.get(TODAY).value
    assert [(e.exercise_name, e.total_sets) for e in day.exercises] == [("Curl-up", 1), ("Curl-up", 2)]
    assert day.exercises[1].reps_schema == [2, 1]
    assert sess.errors == []

def test_diary_follows_the_session_day(store, kv, config, clock):
    # opened for yesterday, finished after midnight
    yesterday = "2025-03-09"
    kv.data[exercises_key(yesterday)] = json.dumps([{"id": "curl_up", "completed": False}])
    history = DayHistoryStore(kv)
    sess = ExerciseSession(quick_plan(schema=(1,)), date=yesterday, store=store,
                           history=history, config=config).open()
    sess.start()
    run_out(sess)

    assert sess.state.phase is Phase.completed
    assert store.is_daily_completed("curl_up", yesterday)
    assert [e.exercise_name for e in history.get(yesterday).value.exercises] == ["Curl-up"]
    assert history.get(TODAY).value is None

def test_missing_settings_warn_once(store, config, caplog):
    plan = ExercisePlan("curl_up", ExerciseKind.hold, None)
    sess = make_session(store, config, plan)
    sess.start()
    for _ in range(10):
        sess.tick()

    fallbacks = [r for r in caplog.records if r.name == "rehab.engine.timer" and "using defaults" in r.getMessage()]
    assert len(fallbacks) == 1
    assert sess.plan.settings.hold_time == config.DEFAULT_HOLD_TIME

def test_resume_picks_up_saved_position(store, config):
    store.save("curl_up", TODAY, ExerciseProgress(exercise_type="curl_up", completed_sets=1, current_set=2, current_rep=1))

    sess = make_session(store, config)
    assert sess.button_state is ButtonState.resume
    sess.start()
    assert sess.state.phase is Phase.prepare
    assert (sess.state.current_set, sess.state.current_rep) == (2, 1)

def test_completed_today_does_not_start(store, kv, config):
    kv.data[exercises_key(TODAY)] = json.dumps([{"id": "curl_up", "completed": True}])
    sess = make_session(store, config)

    assert sess.state.phase is Phase.completed
    assert sess.button_state is ButtonState.completed
    assert sess.start() == []
    assert not sess.state.is_running

def test_stop_keeps_progress(store, kv, config):
    sess = make_session(store, config)
    sess.start()
    for _ in range(4):  # lead-in, then the first rep
        sess.tick()
    assert sess.state.current_rep == 2

    sess.stop()
    assert not sess.state.is_running
    assert sess.button_state is ButtonState.resume
    assert json.loads(kv.data[progress_key("curl_up", TODAY)])["currentRep"] == 2

    # a stopped timer ignores ticks
    before = sess.state
    assert sess.tick() == []
    assert sess.state == before

def test_two_scheme_exercise_across_reopen(store, kv, config):
    history = DayHistoryStore(kv)
    plan = quick_plan("bird_dog", schema=(1,), dual=True, name="Bird dog")

    first = make_session(store, config, plan, history=history)
    first.start()
    signals = run_out(first)
    assert first.state.phase is Phase.scheme_completed
    assert not first.state.is_running
    assert signals[-1].kind is SignalKind.scheme_completed

    saved = json.loads(kv.data[progress_key("bird_dog", TODAY)])
    assert saved["currentScheme"] == 2 and saved["schemeOneCompleted"] is True

    # user leaves and comes back later the same day
    second = make_session(store, config, plan, history=history)
    assert second.state.phase is Phase.scheme_completed
    assert second.button_state is ButtonState.resume

    second.start()
    assert second.state.current_scheme == 2
    run_out(second)
    assert second.state.phase is Phase.completed
    assert progress_key("bird_dog", TODAY) not in kv.data

    names = [e.exercise_name for e in history.get(TODAY).value.exercises]
    assert names == ["Bird dog (scheme 1)", "Bird dog (scheme 2)"]

def test_write_failures_do_not_stop_the_session(broken_kv, config, clock):
    store = ProgressStore(broken_kv(writes=True), clock=clock)
    sess = make_session(store, config)
    sess.start()
    run_out(sess)

    assert sess.state.phase is Phase.completed
    assert sess.errors
    assert all(isinstance(e, OSError) for e in sess.errors)

def test_read_failure_starts_fresh(broken_kv, config, clock):
    store = ProgressStore(broken_kv(reads=True), clock=clock)
    sess = make_session(store, config)

    assert sess.button_state is ButtonState.start
    assert sess.errors
    sess.start()
    assert (sess.state.current_set, sess.state.current_rep) == (1, 1)

def test_registry_keeps_one_live_session(store, config):
    registry = SessionRegistry()
    first = registry.open(ExerciseSession(quick_plan(), date=TODAY, store=store, config=config))
    first.start()
    assert first.state.is_running

    second = registry.open(ExerciseSession(quick_plan(), date=TODAY, store=store, config=config))
    assert not first.state.is_running
    assert registry.get("curl_up", TODAY) is second

    assert registry.close("curl_up", TODAY) is second
    assert registry.get("curl_up", TODAY) is None

def test_overlapping_evaluation_is_ignored(store, config):
    inner = []
    holder = {}

    def listener(signal):
        inner.append(holder["sess"].tick())

    sess = make_session(store, config, listener=listener)
    holder["sess"] = sess
    sess.start()

    assert inner == [[]]
    assert sess.state.current_time == config.PREPARE_SECONDS

def test_overlapping_evaluation_from_another_thread_is_ignored(store, config):
    results = []
    holder = {}

    def listener(signal):
        # a second request thread arriving mid-evaluation
        worker = threading.Thread(target=lambda: results.append(holder["sess"].tick()))
        worker.start()
        worker.join()

    sess = make_session(store, config, listener=listener)
    holder["sess"] = sess
    sess.start()

    assert results == [[]]
    assert sess.state.current_time == config.PREPARE_SECONDS
    # released again afterwards
    sess.tick()
    assert sess.state.current_time == config.PREPARE_SECONDS - 1

def test_run_loop_ticks_until_done(store, config):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    sess = make_session(store, config, quick_plan(schema=(1,)))
    sess.start()
    asyncio.run(sess.run(sleep=fake_sleep))

    assert sess.state.phase is Phase.completed
    assert sleeps == [1.0] * (config.PREPARE_SECONDS + 1)
