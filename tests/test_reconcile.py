"""Tests for file reconciliation — the save/ignore decision engine."""

from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path

import pytest
from conftest import FakeVcs, ScriptedPrompter
from rich.console import Console

from githousekeep.models import Classification, Decision
from githousekeep.prompts import parse_response
from githousekeep.reconcile import FileReconciler, is_ignored, reconcile
from githousekeep.store import MemoryStore, StoreError

CASES = [
    # candidates, saved, ignore, answers
    (["a", "b", "c"], [], [], {}),
    (["a", "b", "c"], ["a"], ["b"], {"c": "y"}),
    (["x.log", "y.txt", "z.bin", "keep.me"], ["keep.me", "old.txt"], ["x.log"], {"y.txt": "n", "z.bin": "y"}),
    (["only-saved"], ["only-saved"], [], {}),
    (["p", "q", "r", "s"], [], ["p", "q"], {"r": "maybe", "s": ""}),
]


def _answers(mapping: dict[str, str]):
    return lambda path: parse_response(mapping.get(path, ""))


class TestReconcileProperties:
    """Invariants that hold for every input."""

    @pytest.mark.parametrize("candidates,saved,ignore,answers", CASES)
    def test_save_set_invariants(self, candidates, saved, ignore, answers) -> None:
        """Save set covers saved, avoids ignored, adds only explicit yeses."""
        result = reconcile(candidates, saved, ignore, decide=_answers(answers))

        assert set(result.save_set) >= set(saved)
        assert not set(result.save_set) & set(ignore)
        for path in set(result.save_set) - set(saved):
            assert answers.get(path) == "y"
        for path in result.ignore_additions:
            assert answers.get(path) == "n"
        assert not set(result.save_set) & set(result.ignore_additions)

    @pytest.mark.parametrize("candidates,saved,ignore,answers", CASES)
    def test_second_run_is_stable(self, candidates, saved, ignore, answers) -> None:
        """Feeding the outputs back in changes nothing and asks nothing new."""
        first = reconcile(candidates, saved, ignore, decide=_answers(answers))
        asked = []

        def decide(path: str) -> Decision:
            asked.append(path)
            return _answers(answers)(path)

        second = reconcile(
            candidates, first.save_set, list(ignore) + first.ignore_additions, decide=decide,
        )

        assert second.save_set == first.save_set
        assert second.ignore_additions == []
        assert set(asked) == set(first.unresolved)

    @pytest.mark.parametrize("candidates,saved,ignore,answers", CASES)
    def test_fast_mode_never_mutates(self, candidates, saved, ignore, answers) -> None:
        """Fast mode saves exactly what was saved and ignores nothing new."""
        calls = []
        result = reconcile(
            candidates, saved, ignore, decide=lambda p: calls.append(p), fast=True,
        )
        assert result.save_set == sorted(set(saved))
        assert result.ignore_additions == []
        assert calls == []

    def test_every_candidate_classified_once(self) -> None:
        """Each candidate gets exactly one outcome."""
        result = reconcile(["b", "a", "b", "c"], ["a"], ["b"], decide=lambda p: Decision.SAVE)
        assert [o.path for o in result.outcomes] == ["a", "b", "c"]
        assert [o.classification for o in result.outcomes] == [
            Classification.ALREADY_SAVED,
            Classification.ALREADY_IGNORED,
            Classification.NEWLY_SAVED,
        ]


class TestReconcileBehaviour:
    """Specific scenarios."""

    def test_prompts_in_sorted_order(self) -> None:
        """Unknown files are asked about lexicographically."""
        asked = []
        reconcile(
            ["zeta", "Alpha", "beta", "a/b"], [], [],
            decide=lambda p: asked.append(p) or Decision.UNRESOLVED,
        )
        assert asked == ["Alpha", "a/b", "beta", "zeta"]

    def test_saved_and_ignored_are_not_prompted(self) -> None:
        """Known files skip the prompt."""
        asked = []
        reconcile(["s", "i", "u"], ["s"], ["i"], decide=lambda p: asked.append(p) or Decision.UNRESOLVED)
        assert asked == ["u"]

    def test_saved_files_not_in_candidates_are_kept(self) -> None:
        """A saved file that is no longer untracked stays in the save set."""
        result = reconcile([], ["gone.txt"], [])
        assert result.save_set == ["gone.txt"]

    def test_unresolved_in_neither_set(self) -> None:
        """Empty input for tmp.dat leaves it out of both outputs."""
        result = reconcile(["tmp.dat"], [], [], decide=_answers({"tmp.dat": ""}))
        assert "tmp.dat" not in result.save_set
        assert "tmp.dat" not in result.ignore_additions
        assert result.unresolved == ["tmp.dat"]

    def test_fast_mode_classification(self) -> None:
        """Fast mode marks unknowns as skipped for this run."""
        result = reconcile(["new"], [], [], fast=True)
        assert result.paths_with(Classification.FAST_IGNORED) == ["new"]
        assert result.unresolved == ["new"]

    def test_observe_sees_outcomes_in_order(self) -> None:
        """The observer is called once per candidate as it is decided."""
        seen = []
        reconcile(["b", "a"], ["a"], [], fast=True, observe=lambda o: seen.append(o.path))
        assert seen == ["a", "b"]


class TestIsIgnored:
    """Ignore list entries are names or glob patterns."""

    def test_exact(self) -> None:
        assert is_ignored("build.log", ["build.log"])
        assert not is_ignored("sub/build.log", ["build.log"])

    def test_glob(self) -> None:
        assert is_ignored("sub/x.pyc", ["*.pyc"])
        assert is_ignored("cache/a/b", ["cache/*"])
        assert not is_ignored("x.py", ["*.pyc"])

    def test_literal_brackets_match_exactly(self) -> None:
        """A name with brackets still matches itself."""
        assert is_ignored("report[1].txt", ["report[1].txt"])


class TestFileReconciler:
    """Gathering inputs from the adapter and the store."""

    def _reconciler(self, vcs, store, prompter, fast=False) -> FileReconciler:
        console = Console(file=io.StringIO(), width=200, color_system=None)
        return FileReconciler(vcs, store, prompter, fast=fast, console=console)

    def test_reads_this_years_branch(self, store: MemoryStore) -> None:
        """Only the current year's branch counts as saved."""
        vcs = FakeVcs(
            untracked=["notes.txt"],
            branches={"untracked-files/2023/proj": ["notes.txt"]},
        )
        prompter = ScriptedPrompter({"notes.txt": "y"})

        result = self._reconciler(vcs, store, prompter).run(Path("/src/proj"), datetime(2024, 2, 1))

        assert vcs.queried == ["untracked-files/2024/proj"]
        assert result.branch == "untracked-files/2024/proj"
        assert result.saved == []
        assert prompter.asked == ["notes.txt"]
        assert result.save_set == ["notes.txt"]

    def test_uses_global_ignore_list(self, store: MemoryStore) -> None:
        """Persisted ignores are honoured without prompting."""
        store.add("git-housekeep", "ignore", "build.log")
        vcs = FakeVcs(untracked=["build.log", "new.txt"])
        prompter = ScriptedPrompter()

        result = self._reconciler(vcs, store, prompter).run(Path("/src/proj"), datetime(2024, 2, 1))

        assert prompter.asked == ["new.txt"]
        assert result.paths_with(Classification.ALREADY_IGNORED) == ["build.log"]

    def test_fast_mode_prints_ignored_lines(self, store: MemoryStore) -> None:
        """Fast mode prints one (IGNORED) line per skipped file."""
        buffer = io.StringIO()
        reconciler = FileReconciler(
            FakeVcs(untracked=["a", "b"], branches={"untracked-files/2024/proj": ["a"]}),
            store,
            ScriptedPrompter(),
            fast=True,
            console=Console(file=buffer, width=200, color_system=None),
        )
        reconciler.run(Path("/src/proj"), datetime(2024, 2, 1))
        assert buffer.getvalue().strip().splitlines() == ["(IGNORED) b"]

    def test_unreadable_store_means_no_ignores(self) -> None:
        """A broken store degrades to an empty ignore list."""

        class BrokenStore(MemoryStore):
            def get_all(self, section, key):
                raise StoreError("corrupt")

        prompter = ScriptedPrompter()
        self._reconciler(FakeVcs(untracked=["x"]), BrokenStore(), prompter).run(
            Path("/src/proj"), datetime(2024, 2, 1)
        )
        assert prompter.asked == ["x"]
