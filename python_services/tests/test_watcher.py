import asyncio

import httpx
import pytest

from tutor_client.content_parser import EnvironmentButtonPart
from tutor_client.watcher import ENVIRONMENT_URL, LESSON_URL, ContentWatcher


class GeneratedFiles:
    """Serves mutable lesson/environment pages over an httpx mock transport."""

    def __init__(self):
        self.files = {LESSON_URL: "<p>placeholder</p>", ENVIRONMENT_URL: "<html>env</html>"}
        self.fail = False
        self.hits = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.hits += 1
        if self.fail:
            raise httpx.ConnectError("service down", request=request)
        body = self.files.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)


@pytest.fixture()
def files():
    return GeneratedFiles()


@pytest.fixture()
def http(files):
    return httpx.AsyncClient(transport=httpx.MockTransport(files), base_url="http://tutor")


@pytest.mark.asyncio
async def test_first_check_reports_both_files(http):
    lessons, environments = [], []
    watcher = ContentWatcher(
        http,
        on_lesson_change=lambda content, parts: lessons.append((content, parts)),
        on_environment_change=environments.append,
    )

    changes = await watcher.check()

    assert changes.lesson and changes.environment
    assert lessons[0][0] == "<p>placeholder</p>"
    assert environments == [watcher.environment_key]


@pytest.mark.asyncio
async def test_unchanged_content_is_not_reported(http):
    watcher = ContentWatcher(http)
    await watcher.check()

    changes = await watcher.check()

    assert not changes.lesson
    assert not changes.environment


@pytest.mark.asyncio
async def test_lesson_change_parses_buttons(http, files):
    watcher = ContentWatcher(http)
    await watcher.check()
    files.files[LESSON_URL] = "<p>Go</p>[Run it](button:simulation:Drop a ball)"

    changes = await watcher.check()

    assert changes.lesson and not changes.environment
    assert isinstance(watcher.lesson_parts[1], EnvironmentButtonPart)
    assert watcher.lesson_parts[1].env_type == "simulation"


@pytest.mark.asyncio
async def test_environment_key_always_increases(http, files):
    watcher = ContentWatcher(http)
    await watcher.check()
    first_key = watcher.environment_key

    files.files[ENVIRONMENT_URL] = "<html>new env</html>"
    await watcher.check()

    assert watcher.environment_key > first_key


@pytest.mark.asyncio
async def test_force_refresh_reloads_lesson_only(http):
    lessons, environments = [], []
    watcher = ContentWatcher(
        http,
        on_lesson_change=lambda content, parts: lessons.append(content),
        on_environment_change=environments.append,
    )
    await watcher.check()

    changes = await watcher.force_refresh()

    assert changes.lesson and not changes.environment
    assert len(lessons) == 2
    assert len(environments) == 1


@pytest.mark.asyncio
async def test_fetch_errors_are_swallowed(http, files):
    files.fail = True
    watcher = ContentWatcher(http)

    changes = await watcher.check()

    assert not changes.lesson and not changes.environment


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_check(http):
    def broken(*args):
        raise ValueError("bad render")

    watcher = ContentWatcher(http, on_lesson_change=broken)

    changes = await watcher.check()

    assert changes.lesson and changes.environment


@pytest.mark.asyncio
async def test_polls_only_while_generating(http, files):
    watcher = ContentWatcher(http, interval=0.01)

    watcher.set_generating(True)
    await asyncio.sleep(0.1)
    watcher.set_generating(False)
    hits_when_stopped = files.hits
    await asyncio.sleep(0.05)

    assert hits_when_stopped >= 2
    assert files.hits == hits_when_stopped
    await watcher.close()
