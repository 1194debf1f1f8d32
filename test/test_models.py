import random

from dayshift.models import BlockKind, Flexibility, ScheduleBlock, overlaps
from conftest import random_day


def test_block_defaults():
    b = ScheduleBlock(title="Write report", start_minute=540, duration_minutes=60)
    assert b.kind == BlockKind.TASK
    assert b.flexibility == Flexibility.FLEXIBLE
    assert b.end_minute == 600
    assert b.buffer_before_minutes == 0 and b.buffer_after_minutes == 0
    assert b.id


def test_learn_key_derived_from_title():
    b = ScheduleBlock(title="  Deep   Work! ", start_minute=0, duration_minutes=30)
    assert b.title == "Deep   Work!"
    assert b.learn_key == "deep work"


def test_flexibility_rank_order():
    assert Flexibility.FIXED.rank < Flexibility.SEMI_FLEXIBLE.rank < Flexibility.FLEXIBLE.rank


def test_touching_blocks_do_not_overlap(make_block):
    a = make_block("a", "09:00", "10:00")
    b = make_block("b", "10:00", "11:00")
    assert not overlaps(a, b)
    assert not b.overlaps(a)


def test_contained_block_overlaps(make_block):
    outer = make_block("a", "09:00", "12:00")
    inner = make_block("b", "10:00", "10:30")
    assert overlaps(outer, inner)
    assert overlaps(inner, outer)


def test_overlap_symmetry():
    rng = random.Random(7)
    blocks = random_day(rng, 40)
    for a in blocks:
        for b in blocks:
            assert overlaps(a, b) == overlaps(b, a)


def test_json_dump_includes_derived_fields(make_block):
    data = make_block("a", "09:00", "09:45", title="Gym").model_dump(mode="json")
    assert data["end_minute"] == 585
    assert data["learn_key"] == "gym"
    assert data["flexibility"] == "flexible"
    # derived fields are ignored when the dump is fed back in
    assert ScheduleBlock.model_validate(data).end_minute == 585
