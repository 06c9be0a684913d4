import pytest

from core.context import ToolContext
from core.database import DatabasePool
from core.process import CommandResult
from core.settings import Settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeRunner:
    """Records every argv instead of executing it."""

    def __init__(self, returncode=0, stdout="", stderr=""):
        self.calls = []
        self.spawned = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    async def run(self, argv, cwd=None):
        self.calls.append((tuple(argv), cwd))
        return CommandResult(tuple(argv), self.returncode, self.stdout, self.stderr)

    async def check(self, argv, cwd=None):
        return await self.run(argv, cwd=cwd)

    def spawn_detached(self, argv, cwd=None):
        self.spawned.append((tuple(argv), cwd))
        return 4242

    @property
    def last_argv(self):
        return list(self.calls[-1][0])


class FakePool:
    def __init__(self, params):
        self.params = params
        self.closed = False

    def close(self):
        self.closed = True

    async def wait_closed(self):
        return None


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        templates_dir=tmp_path / "templates",
        default_cwd=tmp_path,
    )


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def ctx(settings, runner):
    created = []

    async def factory(params):
        pool = FakePool(params)
        created.append(pool)
        return pool

    context = ToolContext(settings=settings, runner=runner, db=DatabasePool(factory=factory))
    context.created_pools = created
    return context
