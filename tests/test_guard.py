"""Tests for the protect() route guard."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from hbac import HBAC
from hbac.db.memory import InMemoryConnector
from hbac.errors import AccessDeniedError, AuthenticationRequiredError
from hbac.guard import default_get_user_id, protect


@pytest.fixture
def hbac(sample_config) -> HBAC:
    return HBAC(config=sample_config, connector=InMemoryConnector())


def _request(user=None, session=None, **extra):
    return SimpleNamespace(user=user, session=session, **extra)


# ── User extraction ────────────────────────────────────────────────


class TestDefaultGetUserId:
    def test_user_id_attribute(self):
        assert default_get_user_id(_request(user=SimpleNamespace(id="u1"))) == "u1"

    def test_user_sub_claim(self):
        assert default_get_user_id(_request(user={"sub": "u2"})) == "u2"

    def test_session_user_id(self):
        assert default_get_user_id(_request(session={"userId": "u3"})) == "u3"

    def test_mapping_request(self):
        assert default_get_user_id({"user": {"id": "u4"}}) == "u4"

    def test_nothing_found(self):
        assert default_get_user_id(_request()) is None
        assert default_get_user_id(object()) is None


# ── protect ────────────────────────────────────────────────────────


class TestProtect:
    @pytest.mark.asyncio
    async def test_allows_and_forwards_arguments(self, hbac: HBAC):
        await hbac.initialize()
        await hbac.assign_role("u1", "role_user")

        @protect(hbac, "read", "posts")
        async def handler(request, post_id, *, verbose=False):
            """List posts."""
            return post_id, verbose

        req = _request(user={"id": "u1"})
        assert await handler(req, 7, verbose=True) == (7, True)
        assert handler.__name__ == "handler"
        assert handler.__doc__ == "List posts."

    @pytest.mark.asyncio
    async def test_denies(self, hbac: HBAC):
        await hbac.initialize()
        called = False

        @protect(hbac, "delete", "posts")
        async def handler(request):
            nonlocal called
            called = True

        with pytest.raises(AccessDeniedError) as exc_info:
            await handler(_request(user={"id": "u1"}))
        assert exc_info.value.action == "delete"
        assert called is False

    @pytest.mark.asyncio
    async def test_requires_authentication(self, hbac: HBAC):
        await hbac.initialize()

        @protect(hbac, "read", "posts")
        async def handler(request):
            return "ok"

        with pytest.raises(AuthenticationRequiredError):
            await handler(_request())

    @pytest.mark.asyncio
    async def test_custom_extractors(self, hbac: HBAC):
        await hbac.initialize()
        await hbac.assign_role("u1", "role_user")

        @protect(
            hbac,
            "update",
            "posts",
            get_user_id=lambda req: req.headers.get("x-user"),
            get_context=lambda req: {"isOwner": req.owner == req.headers.get("x-user")},
        )
        async def handler(request):
            return "updated"

        mine = SimpleNamespace(headers={"x-user": "u1"}, owner="u1")
        theirs = SimpleNamespace(headers={"x-user": "u1"}, owner="u9")
        assert await handler(mine) == "updated"
        with pytest.raises(AccessDeniedError):
            await handler(theirs)
