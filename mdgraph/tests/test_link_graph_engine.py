import asyncio
import tempfile
import unittest
from pathlib import Path

from mdgraph.graph.broadcaster import SnapshotBroadcaster
from mdgraph.graph.engine import LinkGraphEngine
from mdgraph.models import GraphSnapshot


class _StaticSource:
    def __init__(self, value) -> None:
        self.value = value

    def current(self):
        return self.value


class LinkGraphEngineTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.palette = _StaticSource(["#111111", "#222222"])
        self.settings = _StaticSource({"visuals": {"nodeSize": 4}})
        self.engine = LinkGraphEngine(
            self.root,
            debounce_seconds=0.01,
            palette=self.palette,
            settings=self.settings,
        )
        self.received: list[GraphSnapshot] = []

    async def asyncTearDown(self) -> None:
        await self.engine.scheduler.close()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, body: str) -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")
        return path

    async def _settle(self) -> GraphSnapshot:
        await asyncio.wait_for(self.engine.scheduler.wait_idle(), timeout=5)
        return self.engine.broadcaster.current

    async def _record(self, snapshot: GraphSnapshot) -> None:
        self.received.append(snapshot)

    @staticmethod
    def _edges(snapshot: GraphSnapshot) -> list[tuple[str, str]]:
        return [(link.source, link.target) for link in snapshot.links]

    async def test_two_documents_link_to_each_other(self) -> None:
        self.engine.file_added(self._write("a.md", "[[b]]"))
        self.engine.file_added(self._write("b.md", "[link](a.md)"))

        snapshot = await self._settle()

        self.assertEqual([node.id for node in snapshot.nodes], ["a.md", "b.md"])
        self.assertEqual(self._edges(snapshot), [("a.md", "b.md"), ("b.md", "a.md")])
        self.assertEqual(snapshot.palette, ["#111111", "#222222"])
        self.assertEqual(snapshot.config, {"visuals": {"nodeSize": 4}})

    async def test_missing_target_yields_node_without_links(self) -> None:
        self.engine.file_added(self._write("a.md", "[[missing]]"))

        snapshot = await self._settle()

        self.assertEqual([node.id for node in snapshot.nodes], ["a.md"])
        self.assertEqual(snapshot.links, [])

    async def test_removed_document_disappears_but_source_record_keeps_reference(self) -> None:
        a = self._write("a.md", "[[b]]")
        b = self._write("b.md", "")
        self.engine.file_added(a)
        self.engine.file_added(b)
        await self._settle()

        b.unlink()
        self.engine.file_removed(b)
        snapshot = await self._settle()

        self.assertEqual([node.id for node in snapshot.nodes], ["a.md"])
        self.assertEqual(snapshot.links, [])
        record = self.engine.cache.get(a)
        assert record is not None
        self.assertEqual([link.target for link in record.links], ["b"])

    async def test_unreadable_document_does_not_block_others(self) -> None:
        broken = self.root / "broken.md"
        broken.mkdir()
        self.engine.file_added(broken)
        self.engine.file_added(self._write("b.md", "[[c]]"))
        self.engine.file_added(self._write("c.md", "[[broken]] [[b]]"))

        with self.assertLogs("mdgraph.cache", level="ERROR"):
            snapshot = await self._settle()

        self.assertEqual([node.id for node in snapshot.nodes], ["b.md", "c.md"])
        self.assertEqual(self._edges(snapshot), [("b.md", "c.md"), ("c.md", "b.md")])

    async def test_changed_document_is_reparsed(self) -> None:
        a = self._write("a.md", "[[b]]")
        self.engine.file_added(a)
        self.engine.file_added(self._write("b.md", ""))
        self.engine.file_added(self._write("c.md", ""))
        await self._settle()

        a.write_text("[[c]]", encoding="utf-8")
        self.engine.file_changed(a)
        snapshot = await self._settle()

        self.assertEqual(self._edges(snapshot), [("a.md", "c.md")])

    async def test_burst_of_events_triggers_one_rebuild(self) -> None:
        paths = [self._write(f"n{i}.md", f"[[n{i + 1}]]") for i in range(20)]
        for path in paths:
            self.engine.file_added(path)
        for path in paths:
            self.engine.file_changed(path)

        snapshot = await self._settle()

        self.assertEqual(self.engine.scheduler.runs, 1)
        self.assertEqual(len(snapshot.nodes), 20)
        self.assertEqual(len(snapshot.links), 19)

    async def test_unchanged_rebuild_does_not_notify(self) -> None:
        a = self._write("a.md", "[[a]]")
        await self.engine.broadcaster.subscribe(self._record)
        self.engine.file_added(a)
        await self._settle()

        self.engine.file_changed(a)
        await self._settle()

        self.assertEqual(self.engine.scheduler.runs, 2)
        # Empty snapshot on subscribe, then exactly one update.
        self.assertEqual(len(self.received), 2)

    async def test_stalled_subscriber_does_not_freeze_updates(self) -> None:
        engine = LinkGraphEngine(
            self.root,
            debounce_seconds=0.01,
            palette=self.palette,
            settings=self.settings,
            broadcaster=SnapshotBroadcaster(send_timeout=0.05),
        )
        stalled_calls = []

        async def stalled(snapshot: GraphSnapshot) -> None:
            stalled_calls.append(snapshot)
            if len(stalled_calls) > 1:
                await asyncio.Event().wait()

        try:
            await engine.broadcaster.subscribe(stalled)
            await engine.broadcaster.subscribe(self._record)

            with self.assertLogs("mdgraph.graph", level="ERROR"):
                engine.file_added(self._write("a.md", "[[b]]"))
                await asyncio.wait_for(engine.scheduler.wait_idle(), timeout=5)
            engine.file_added(self._write("b.md", ""))
            await asyncio.wait_for(engine.scheduler.wait_idle(), timeout=5)
        finally:
            await engine.scheduler.close()

        self.assertFalse(engine.scheduler.running)
        self.assertEqual(len(self.received), 3)
        self.assertEqual([node.id for node in self.received[-1].nodes], ["a.md", "b.md"])

    async def test_settings_change_is_published_on_rebuild(self) -> None:
        self.engine.file_added(self._write("a.md", ""))
        await self._settle()

        self.palette.value = ["#ffffff"]
        self.engine.request_rebuild()
        snapshot = await self._settle()

        self.assertEqual(snapshot.palette, ["#ffffff"])

    async def test_non_documents_are_ignored(self) -> None:
        self.engine.file_added(self._write("image.png", ""))
        self.engine.file_changed(self.root / "notes.txt")
        self.engine.file_removed(self.root / "notes.txt")

        self.assertEqual(len(self.engine.watched), 0)
        self.assertFalse(self.engine.scheduler.pending)

    async def test_rebuild_can_be_called_directly(self) -> None:
        self.engine.watched.add(self._write("a.md", "[x](b.md)"))
        self.engine.watched.add(self._write("sub/b.md", ""))

        snapshot = await self.engine.rebuild()

        self.assertEqual([node.id for node in snapshot.nodes], ["a.md", "sub/b.md"])
        self.assertEqual(self._edges(snapshot), [("a.md", "sub/b.md")])


if __name__ == "__main__":
    unittest.main()
