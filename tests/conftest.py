"""Pytest configuration helpers and fakes for the generation service.

The project root is put on `sys.path` so tests can import `creative_studio`
without an install.
"""
import os
import sys
from types import SimpleNamespace

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from creative_studio.services.asset_store import AssetStore  # noqa: E402
from creative_studio.services.credentials import CredentialSession, EnvironmentKeySelector  # noqa: E402
from creative_studio.services.studio import Studio  # noqa: E402
from creative_studio.services.video_service import VideoJobService  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
API_KEY = "test-key"
VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"


def pending_operation(name="operations/veo-1"):
    return SimpleNamespace(name=name, done=False, error=None, response=None)


def done_operation(uri=VIDEO_URI, name="operations/veo-1"):
    video = SimpleNamespace(uri=uri) if uri else None
    response = SimpleNamespace(generated_videos=[SimpleNamespace(video=video)] if video else [])
    return SimpleNamespace(name=name, done=True, error=None, response=response)


def image_response(data=b"edited-bytes"):
    parts = [
        SimpleNamespace(text="Here you go", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type="image/png")),
    ]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class FakeGenai:
    """Stands in for ``genai.Client`` and records every call made through it."""

    def __init__(
        self,
        submit=None,
        polls=(),
        content=None,
        submit_error=None,
        poll_error=None,
        content_error=None,
    ):
        self.submit_result = submit if submit is not None else pending_operation()
        self.polls = list(polls)
        self.content = content
        self.submit_error = submit_error
        self.poll_error = poll_error
        self.content_error = content_error
        self.api_keys = []
        self.video_calls = []
        self.poll_calls = []
        self.content_calls = []

    def factory(self, api_key):
        self.api_keys.append(api_key)
        models = SimpleNamespace(generate_videos=self._generate_videos, generate_content=self._generate_content)
        operations = SimpleNamespace(get=self._get_operation)
        return SimpleNamespace(aio=SimpleNamespace(models=models, operations=operations))

    async def _generate_videos(self, **kwargs):
        self.video_calls.append(kwargs)
        if self.submit_error is not None:
            raise self.submit_error
        return self.submit_result

    async def _get_operation(self, operation):
        self.poll_calls.append(operation)
        if self.poll_error is not None:
            raise self.poll_error
        return self.polls.pop(0)

    async def _generate_content(self, **kwargs):
        self.content_calls.append(kwargs)
        if self.content_error is not None:
            raise self.content_error
        return self.content


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class RecordingTransport:
    """httpx transport that answers asset downloads with a fixed response."""

    def __init__(self, status_code=200, content=b"video-bytes", content_type="video/mp4"):
        self.status_code = status_code
        self.content = content
        self.content_type = content_type
        self.requests = []

    def handler(self, request):
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content, headers={"content-type": self.content_type})

    def client_factory(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def session():
    session = CredentialSession(EnvironmentKeySelector(API_KEY))
    session.selected = True
    session.checking = False
    return session


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_service(session, fake_sleep, transport):
    def _make(genai, **kwargs):
        return VideoJobService(
            session,
            kwargs.pop("assets", AssetStore()),
            client_factory=genai.factory,
            http_client_factory=transport.client_factory,
            sleep=fake_sleep,
            poll_interval=kwargs.pop("poll_interval", 10.0),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_studio(session, make_service):
    def _make(genai, **kwargs):
        service = make_service(genai)
        return Studio(session, assets=service.assets, video_service=service, client_factory=genai.factory, **kwargs)

    return _make
