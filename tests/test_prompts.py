import pytest

from callslice.errors import SeedResolutionError
from callslice.prompts import (
    PresetAnswers,
    gather_options,
    normalize_enum,
    normalize_yes_no,
    parse_int_or_default,
)
from callslice.settings import RefMode, SliceSettings


class ScriptedAsk:
    """Answers questions from a fixed list and records what was asked."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.questions = []

    def __call__(self, question, default=""):
        self.questions.append(question)
        return self.answers.pop(0) if self.answers else default


def test_parse_int_or_default():
    assert parse_int_or_default("3", 1) == 3
    assert parse_int_or_default(" 0 ", 1) == 0
    assert parse_int_or_default("", 1) == 1
    assert parse_int_or_default("x", 2) == 2
    assert parse_int_or_default("-4", 2) == 2
    assert parse_int_or_default(None, 5) == 5


@pytest.mark.parametrize(
    "answer,default,expected",
    [
        ("y", False, True),
        ("YES", False, True),
        ("0", True, False),
        ("no", True, False),
        ("", False, False),
        ("maybe", True, True),
    ],
)
def test_normalize_yes_no(answer, default, expected):
    assert normalize_yes_no(answer, default) is expected


def test_normalize_enum():
    assert normalize_enum(" BOTH ", ["id", "name", "both"], "name") == "both"
    assert normalize_enum("ids", ["id", "name", "both"], "name") == "name"


def test_defaults_on_empty_answers():
    ask = ScriptedAsk(["foo"])
    opts = gather_options(ask, SliceSettings())

    assert opts.seeds == ["foo"]
    assert opts.full_radius == 1
    assert opts.context_radius == 2
    assert opts.include_children is True
    assert opts.ref_mode == RefMode.NAME
    assert opts.pretty is True
    assert opts.clipboard is False
    # childCount is only asked when children are omitted
    assert len(ask.questions) == 7


def test_full_answer_sequence():
    ask = ScriptedAsk(["a, b", "2", "1", "n", "y", "both", "n", "y"])
    opts = gather_options(ask, SliceSettings())

    assert opts.seeds == ["a", "b"]
    assert opts.full_radius == 2
    # context below full is raised to full
    assert opts.context_radius == 2
    assert opts.include_children is False
    assert opts.include_child_count is True
    assert opts.ref_mode == RefMode.BOTH
    assert opts.pretty is False
    assert opts.clipboard is True
    assert len(ask.questions) == 8
    assert ask.questions[0].startswith("Seed function(s)")


def test_preset_answers_skip_questions():
    ask = ScriptedAsk(["3"])
    preset = PresetAnswers(
        seeds=["x"],
        include_children=True,
        ref_mode=RefMode.ID,
        pretty=False,
        clipboard=False,
    )
    opts = gather_options(ask, SliceSettings(), preset)

    assert ask.questions[0].startswith("Full-detail radius")
    assert len(ask.questions) == 2
    assert opts.full_radius == 3
    assert opts.context_radius == 3
    assert opts.ref_mode == RefMode.ID


def test_settings_change_defaults():
    settings = SliceSettings(full_radius=0, context_radius=4, pretty=False)
    opts = gather_options(ScriptedAsk(["x"]), settings)
    assert (opts.full_radius, opts.context_radius, opts.pretty) == (0, 4, False)


def test_seed_check_runs_before_other_questions():
    ask = ScriptedAsk(["missing", "1"])

    def _reject(seeds):
        raise SeedResolutionError(seeds)

    with pytest.raises(SeedResolutionError):
        gather_options(ask, SliceSettings(), on_seeds=_reject)
    assert len(ask.questions) == 1
