from chivoice.progress import advance, recordings_needed, reset
from chivoice.schemas import Task, UserTaskProgress
from chivoice.unlock_policy import DecisionKind, PolicySnapshot, UnlockState, decide, resolve_state

LANG = "lang-1"
USER = "user-1"


def progress(count):
    return UserTaskProgress(user_id=USER, language_id=LANG, recordings_count=count, can_generate_next=count >= 2)


def starter():
    return Task(
        id="t1", language_id=LANG, english_text="Hello", category="word",
        difficulty="beginner", estimated_time=1, sequence_order=1, is_starter_task=True,
    )


def test_empty_language_is_seeded():
    d = decide(PolicySnapshot(task_count=0))
    assert d.kind is DecisionKind.SEED_STARTERS
    assert d.allowed


def test_pending_starter_rejects_even_with_force():
    snap = PolicySnapshot(task_count=20, next_starter=starter(), progress=progress(5))
    assert resolve_state(snap) is UnlockState.NEEDS_STARTER
    for force in (False, True):
        d = decide(snap, force=force)
        assert d.kind is DecisionKind.REJECT_STARTER_PENDING
        assert d.next_starter.english_text == "Hello"
        assert not d.allowed


def test_locked_without_progress_row():
    d = decide(PolicySnapshot(task_count=20))
    assert d.state is UnlockState.LOCKED
    assert d.kind is DecisionKind.REJECT_LOCKED
    assert d.recordings_needed == 2


def test_locked_with_one_recording():
    d = decide(PolicySnapshot(task_count=20, progress=progress(1)))
    assert d.kind is DecisionKind.REJECT_LOCKED
    assert d.recordings_needed == 1


def test_force_bypasses_threshold():
    d = decide(PolicySnapshot(task_count=20, progress=progress(0)), force=True)
    assert d.kind is DecisionKind.GENERATE
    assert d.forced


def test_unlocked_generates():
    d = decide(PolicySnapshot(task_count=21, progress=progress(2)))
    assert d.state is UnlockState.UNLOCKED
    assert d.kind is DecisionKind.GENERATE
    assert not d.forced


def test_progress_transitions():
    p = advance(None, user_id=USER, language_id=LANG)
    assert p.recordings_count == 1 and not p.can_generate_next
    assert recordings_needed(p) == 1

    p = advance(p, user_id=USER, language_id=LANG)
    assert p.recordings_count == 2 and p.can_generate_next
    assert recordings_needed(p) == 0

    p = advance(p, user_id=USER, language_id=LANG)
    assert p.can_generate_next == (p.recordings_count >= 2)

    r = reset(p)
    assert r.recordings_count == 0 and not r.can_generate_next
    assert r.last_recording_at == p.last_recording_at
