"""Tests for the aggregation engine."""

import random
import threading


from conftest import insert, remove
from kpm_svc.kpm.engine import AggregationEngine
from kpm_svc.kpm.events import ChangeEvent, ChangeRecord, CloseEvent, OpenEvent
from kpm_svc.kpm.types import UNNAMED_ROOT, UNTITLED_WORKSPACE, ProjectRoot


def change(engine, text="", removed=0, lines=1, path="/p/a.ts", root="/p", language="typescript"):
    engine.on_change(
        path,
        root,
        language_id=language,
        line_count=lines,
        change_records=(ChangeRecord(inserted_text=text, removed_extent=removed),),
        current_length=100,
    )


def counter(store, root="/p", path="/p/a.ts"):
    return store.get(root).source[path]


class TestOpenClose:
    def test_open_creates_aggregate_and_counter(self, engine, store):
        engine.on_open("/p/a.ts", "/p")

        assert "/p" in store
        c = counter(store)
        assert c.open == 1
        assert c.add == 0
        assert c.close == 0
        assert store.get("/p").keystrokes == 0

    def test_close_records_final_length(self, engine, store):
        engine.on_close("/p/a.ts", "/p", final_length=321)

        c = counter(store)
        assert c.close == 1
        assert c.length == 321

    def test_missing_root_falls_back_to_unnamed(self, engine, store):
        engine.on_open("/tmp/scratch.txt", None)

        aggregate = store.get(UNNAMED_ROOT)
        assert aggregate is not None
        assert aggregate.name == UNTITLED_WORKSPACE
        assert aggregate.source["/tmp/scratch.txt"].open == 1


class TestOnChange:
    def test_add(self, engine, store):
        change(engine, "x")

        c = counter(store)
        assert c.add == 1
        assert c.netkeys == 1
        assert store.get("/p").keystrokes == 1

    def test_delete(self, engine, store):
        change(engine, "", removed=5)

        c = counter(store)
        assert c.delete == 1
        assert c.add == 0
        assert c.netkeys == -1
        assert store.get("/p").keystrokes == 1

    def test_paste(self, engine, store):
        change(engine, "a" * 9)

        c = counter(store)
        assert c.paste == 1
        assert c.add == 0
        assert c.delete == 0
        assert store.get("/p").keystrokes == 1

    def test_noop_touches_no_counters(self, engine, store):
        change(engine, "", removed=0)

        c = counter(store)
        assert (c.add, c.delete, c.paste) == (0, 0, 0)
        assert store.get("/p").keystrokes == 0

    def test_length_updated_even_for_noop(self, engine, store):
        engine.on_change("/p/a.ts", "/p", "ts", 1, insert(""), current_length=42)
        assert counter(store).length == 42

    def test_multi_cursor_edit_is_not_classified(self, engine, store):
        engine.on_open("/p/a.ts", "/p")
        engine.on_change(
            "/p/a.ts", "/p", "ts", 1,
            (ChangeRecord(inserted_text="a"), ChangeRecord(inserted_text="a")),
            current_length=10,
        )

        c = counter(store)
        assert c.add == 0
        assert c.open == 1
        assert c.length == 10
        assert store.get("/p").keystrokes == 0
        assert engine.stats["ambiguous"] == 1

    def test_syntax_set_once(self, engine, store):
        change(engine, "x", language="typescript")
        change(engine, "y", language="javascript")
        assert counter(store).syntax == "typescript"

    def test_syntax_filled_when_first_empty(self, engine, store):
        change(engine, "x", language="")
        change(engine, "y", language="python")
        assert counter(store).syntax == "python"

    def test_line_break_counts_keystroke_not_add(self, engine, store):
        change(engine, "\n", lines=1)

        c = counter(store)
        assert c.add == 0
        assert c.lines_added == 1
        assert store.get("/p").keystrokes == 1


class TestLineCounting:
    def test_first_observation_sets_baseline(self, engine, store):
        change(engine, "x", lines=40)

        c = counter(store)
        assert c.lines == 40
        assert c.lines_added == 0
        assert c.lines_removed == 0

    def test_line_growth_and_shrink(self, engine, store):
        change(engine, "x", lines=10)
        change(engine, "y", lines=13)
        change(engine, "", removed=1, lines=11)

        c = counter(store)
        assert c.lines == 11
        assert c.lines_added == 3
        assert c.lines_removed == 2

    def test_newline_forces_one_line_added(self, engine, store):
        # Line count diff says nothing changed, newline still registers
        change(engine, "x", lines=5)
        change(engine, "x\n", lines=5)

        c = counter(store)
        assert c.add == 2
        assert c.lines_added >= 1

    def test_newline_does_not_force_when_lines_already_added(self, engine, store):
        change(engine, "x", lines=5)
        change(engine, "y", lines=8)
        change(engine, "\n", lines=8)
        assert counter(store).lines_added == 3

    def test_zero_line_count_is_a_valid_baseline(self, engine, store):
        change(engine, "x", lines=0)
        change(engine, "y", lines=2)
        assert counter(store).lines_added == 2


class TestInvariants:
    def test_netkeys_and_monotonic_lines_over_random_stream(self, engine, store):
        rng = random.Random(1234)
        texts = ["", "a", "ab\n", "\n", "x" * 20, "let ", "\r\n"]
        prev_added = prev_removed = 0

        for _ in range(500):
            text = rng.choice(texts)
            removed = rng.choice([0, 0, 1, 3, 12])
            lines = rng.randint(0, 50)
            change(engine, text, removed=removed, lines=lines)

            c = counter(store)
            assert c.netkeys == c.add - c.delete
            assert c.lines_added >= prev_added
            assert c.lines_removed >= prev_removed
            prev_added, prev_removed = c.lines_added, c.lines_removed

    def test_keystrokes_never_decrease(self, engine, store):
        seen = 0
        for text, removed in [("a", 0), ("", 3), ("", 0), ("b" * 12, 0), ("", 1)]:
            change(engine, text, removed=removed)
            keystrokes = store.get("/p").keystrokes
            assert keystrokes >= seen
            seen = keystrokes
        assert seen == 4


class TestScenario:
    def test_open_type_delete_paste_close(self, engine, store):
        engine.handle_open(OpenEvent(path="/p/a.ts"))
        c = counter(store)
        assert (c.open, c.add) == (1, 0)

        engine.handle_change(ChangeEvent(
            path="/p/a.ts", language_id="typescript", line_count=1,
            current_length=4, change_records=insert("let "),
        ))
        assert (c.add, c.netkeys) == (1, 1)

        engine.handle_change(ChangeEvent(
            path="/p/a.ts", language_id="typescript", line_count=1,
            current_length=0, change_records=remove(4),
        ))
        assert (c.add, c.delete, c.netkeys) == (1, 1, 0)

        engine.handle_change(ChangeEvent(
            path="/p/a.ts", language_id="typescript", line_count=1,
            current_length=20, change_records=insert("const value = 42;//x"),
        ))
        assert c.paste == 1
        assert (c.add, c.delete) == (1, 1)

        engine.handle_close(CloseEvent(path="/p/a.ts", final_length=20))
        assert c.close == 1
        assert c.length == 20

        aggregate = store.get("/p")
        assert aggregate.name == "p"
        assert aggregate.keystrokes == 3


class TestFiltering:
    def test_missing_path_is_dropped(self, engine, store):
        engine.handle_open(OpenEvent(path=None))
        engine.handle_change(ChangeEvent(path="", change_records=insert("x")))

        assert len(store) == 0
        assert engine.stats["dropped"] == 2

    def test_liveshare_temp_workspace_is_dropped(self, engine, store):
        path = "/home/u/.vsliveshare/tmp-4f2a/Visual Studio Live Share.code-workspace"
        engine.handle_open(OpenEvent(path=path))
        engine.handle_change(ChangeEvent(path=path, change_records=insert("x")))

        assert len(store) == 0

    def test_flagged_status_file_only_toggles_visibility(self, engine, store):
        engine.handle_open(OpenEvent(path="/home/u/.kpm/dashboard.txt", is_tracked_metrics_file=True))
        assert engine.status.focused
        assert not engine.status.closed

        engine.handle_change(ChangeEvent(
            path="/home/u/.kpm/dashboard.txt",
            change_records=insert("x"),
            is_tracked_metrics_file=True,
        ))
        engine.handle_close(CloseEvent(path="/home/u/.kpm/dashboard.txt", is_tracked_metrics_file=True))

        assert len(store) == 0
        assert not engine.status.focused
        assert engine.status.closed

    def test_configured_status_file_is_not_counted(self, store):
        engine = AggregationEngine(store=store, status_file="/home/u/.kpm/dashboard.txt")
        engine.handle_open(OpenEvent(path="/home/u/.kpm/dashboard.txt"))

        assert len(store) == 0
        assert engine.status.focused

    def test_opening_another_file_clears_focus(self, engine):
        engine.handle_open(OpenEvent(path="/x/dashboard.txt", is_tracked_metrics_file=True))
        engine.handle_open(OpenEvent(path="/p/a.ts"))
        assert not engine.status.focused

    def test_change_without_line_count_is_dropped_untouched(self, engine, store):
        engine.handle_change(ChangeEvent(path="/p/a.ts", line_count=5, change_records=insert("x")))
        engine.handle_change(ChangeEvent(path="/p/a.ts", line_count=None, change_records=insert("y")))

        c = store.get("/p").source["/p/a.ts"]
        assert (c.add, c.netkeys, c.lines) == (1, 1, 5)
        assert store.get("/p").keystrokes == 1
        assert engine.stats["dropped"] == 1
        assert engine.stats["errors"] == 0

    def test_change_without_length_is_dropped(self, engine, store):
        engine.handle_change(ChangeEvent(path="/p/a.ts", current_length=None, change_records=insert("x")))
        engine.handle_close(CloseEvent(path="/p/a.ts", final_length=None))

        assert len(store) == 0
        assert engine.stats["dropped"] == 2


class TestErrorIsolation:
    def test_failing_resolver_falls_back_to_unnamed(self, store):
        def broken(path):
            raise OSError("workspace lookup failed")

        engine = AggregationEngine(store=store, resolve_root=broken)
        engine.handle_open(OpenEvent(path="/p/a.ts"))

        assert store.get(UNNAMED_ROOT).source["/p/a.ts"].open == 1

    def test_bad_event_does_not_stop_the_stream(self, engine, store, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine, "on_change", explode)
        engine.handle_change(ChangeEvent(path="/p/a.ts", change_records=insert("x")))
        assert engine.stats["errors"] == 1

        monkeypatch.undo()
        engine.handle_change(ChangeEvent(path="/p/a.ts", change_records=insert("x")))
        assert store.get("/p").source["/p/a.ts"].add == 1

    def test_resolver_root_without_directory_uses_fallback(self, store):
        engine = AggregationEngine(
            store=store,
            resolve_root=lambda p: ProjectRoot(directory=""),
            fallback_project_name="Scratch",
        )
        engine.handle_open(OpenEvent(path="/a.txt"))

        aggregate = store.get(UNNAMED_ROOT)
        assert aggregate.name == "Scratch"


class TestConcurrency:
    def test_stats_count_every_event_across_threads(self, engine, store):
        def worker(n):
            for i in range(200):
                engine.handle_change(ChangeEvent(path=f"/p/{n}.ts", change_records=insert("x")))
                engine.handle_open(OpenEvent(path=None))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert engine.stats["processed"] == 8 * 200
        assert engine.stats["dropped"] == 8 * 200
        assert store.get("/p").keystrokes == 8 * 200
