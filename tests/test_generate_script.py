"""Tests for the generate_pseo_content entry point."""
import asyncio
import importlib.util
from pathlib import Path

SCRIPT_PATH = Path(__file__).resolve().parent.parent / "scripts" / "generate_pseo_content.py"


def load_script():
    spec = importlib.util.spec_from_file_location("generate_pseo_content", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class FakeEngine:
    def __init__(self):
        self.disposed = 0

    async def dispose(self) -> None:
        self.disposed += 1


def test_unreachable_database_stops_before_generation(monkeypatch) -> None:
    module = load_script()
    engine = FakeEngine()

    async def unreachable() -> bool:
        return False

    class NoOrchestrator:
        @classmethod
        def from_settings(cls, settings):
            raise AssertionError("orchestrator must not be built")

    monkeypatch.setattr(module, "check_db_connection", unreachable)
    monkeypatch.setattr(module, "engine", engine)
    monkeypatch.setattr(module, "GenerationOrchestrator", NoOrchestrator)

    assert asyncio.run(module.main(["--dry-run"])) == 1
    assert engine.disposed == 1


def test_reachable_database_runs_the_batch(monkeypatch) -> None:
    module = load_script()
    engine = FakeEngine()
    runs = []

    async def reachable() -> bool:
        return True

    class StubOrchestrator:
        @classmethod
        def from_settings(cls, settings):
            return cls()

        async def run(self, batch_size):
            runs.append(batch_size)
            return module.RunResult(success=True, message="Generated 0 posts, skipped 0 duplicates, 0 errors")

    monkeypatch.setattr(module, "check_db_connection", reachable)
    monkeypatch.setattr(module, "engine", engine)
    monkeypatch.setattr(module, "GenerationOrchestrator", StubOrchestrator)

    assert asyncio.run(module.main(["--dry-run", "--batch-size", "3"])) == 0
    assert runs == [3]
    assert engine.disposed == 1
