"""Tests for perch.server.pipeline: middleware ordering, next(), dispatch."""

import asyncio

from perch.app import App
from perch.errors import HandlerError
from perch.testing import TestClient


class TestMiddlewareOrder:
    async def test_runs_in_registration_order_before_route(self) -> None:
        app = App()
        calls: list[str] = []

        def first(request, response, next):
            calls.append("first")
            next()

        async def second(request, response, next):
            await asyncio.sleep(0)
            calls.append("second")
            next()

        @app.get("/")
        def index(request, response, next):
            calls.append("route")
            response.send("ok")

        app.use(first)
        app.use(second)

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "ok"
        assert calls == ["first", "second", "route"]

    async def test_mount_path_is_prefix_gated(self) -> None:
        app = App()
        seen: list[str] = []

        app.use("/admin", lambda req, res, next: (seen.append(req.pathname), next()))
        app.all("/admin", lambda req, res, next: res.send("admin"))
        app.all("/admin2", lambda req, res, next: res.send("admin2"))
        app.all("/public", lambda req, res, next: res.send("public"))

        async with TestClient(app) as client:
            await client.get("/admin")
            await client.get("/admin2")
            await client.get("/public")

        # Plain string prefix: /admin2 is covered by /admin.
        assert seen == ["/admin", "/admin2"]

    async def test_middleware_can_modify_request_for_route(self) -> None:
        app = App()

        def authenticate(request, response, next):
            request.state["user"] = request.headers.get("x-user", "anonymous")
            next()

        app.use(authenticate)

        @app.get("/me")
        def me(request, response, next):
            response.send(request.state["user"])

        async with TestClient(app) as client:
            response = await client.get("/me", headers={"X-User": "ada"})

        assert response.text == "ada"

    async def test_middleware_that_sends_stops_pipeline(self) -> None:
        app = App()
        later: list[str] = []

        def gate(request, response, next):
            response.status(401).send("denied")
            next()

        def after(request, response, next):
            later.append("after")
            response.send("should not happen")

        app.use(gate)
        app.use(after)
        app.get("/", lambda req, res, next: later.append("route"))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 401
        assert response.text == "denied"
        assert later == []

    async def test_only_first_next_call_counts(self) -> None:
        app = App()

        def twice(request, response, next):
            next()
            next(ValueError("ignored"))

        app.use(twice)
        app.get("/", lambda req, res, next: res.send("ok"))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "ok"

    async def test_halted_middleware_sends_empty_response(self) -> None:
        app = App()
        reached: list[str] = []

        def forgetful(request, response, next):
            response.status(202)

        app.use(forgetful)
        app.get("/", lambda req, res, next: reached.append("route"))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert reached == []
        assert response.status == 202
        assert response.body == b""


class TestErrorSignals:
    async def test_next_error_skips_middleware_and_route(self) -> None:
        app = App()
        reached: list[str] = []
        caught: list[Exception] = []

        def failing(request, response, next):
            next(RuntimeError("boom"))

        app.use(failing)
        app.use(lambda req, res, next: reached.append("middleware"))
        app.get("/", lambda req, res, next: reached.append("route"))

        @app.use_error
        def on_error(error, request, response, next):
            caught.append(error)
            response.status(418).send(str(error))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert reached == []
        assert response.status == 418
        assert response.text == "boom"
        assert isinstance(caught[0], RuntimeError)

    async def test_raise_is_same_as_next_error(self) -> None:
        app = App()

        async def failing(request, response, next):
            raise KeyError("missing")

        app.use(failing)
        app.use_error(lambda err, req, res, next: res.status(400).send(type(err).__name__))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 400
        assert response.text == "KeyError"

    async def test_non_exception_error_is_wrapped(self) -> None:
        app = App()
        caught: list[object] = []

        app.use(lambda req, res, next: next("bad input"))

        def on_error(error, request, response, next):
            caught.append(error)
            response.status(400).send("handled")

        app.use_error(on_error)

        async with TestClient(app) as client:
            await client.get("/")

        assert isinstance(caught[0], HandlerError)
        assert caught[0].value == "bad input"

    async def test_unhandled_error_is_500(self) -> None:
        app = App()
        app.use(lambda req, res, next: next(RuntimeError("nobody listens")))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 500
        assert response.text == "Internal Server Error"

    async def test_send_then_error_writes_nothing_more(self) -> None:
        app = App()
        handled: list[str] = []

        def sends_then_fails(request, response, next):
            response.send("partial")
            raise RuntimeError("late failure")

        app.use(sends_then_fails)
        app.use_error(lambda err, req, res, next: handled.append("error"))

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.text == "partial"
        assert handled == []


class TestRouteHandlerChain:
    async def test_chain_runs_in_order(self) -> None:
        app = App()

        def load(request, response, next):
            request.state["item"] = {"id": request.params["id"]}
            next()

        def show(request, response, next):
            response.json(request.state["item"])

        app.get("/items/:id", load, show)

        async with TestClient(app) as client:
            response = await client.get("/items/9")

        assert response.json() == {"id": "9"}

    async def test_nested_handler_lists_are_flattened(self) -> None:
        app = App()
        calls: list[str] = []

        def step(name):
            def handler(request, response, next):
                calls.append(name)
                next()

            return handler

        app.get("/", [step("a"), [step("b")]], step("c"), lambda req, res, next: res.send("ok"))

        async with TestClient(app) as client:
            await client.get("/")

        assert calls == ["a", "b", "c"]

    async def test_chain_stops_when_handler_does_not_call_next(self) -> None:
        app = App()
        calls: list[str] = []

        def first(request, response, next):
            calls.append("first")
            response.send("done")

        def second(request, response, next):
            calls.append("second")

        app.get("/", first, second)

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "done"
        assert calls == ["first"]

    async def test_send_then_next_does_not_run_later_handlers(self) -> None:
        app = App()
        calls: list[str] = []

        def first(request, response, next):
            response.send("first")
            next()

        def second(request, response, next):
            calls.append("second")

        app.get("/", first, second)

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "first"
        assert calls == []

    async def test_handler_error_bypasses_rest_of_chain(self) -> None:
        app = App()
        calls: list[str] = []

        async def failing(request, response, next):
            raise ValueError("invalid id")

        app.get("/items/:id", failing, lambda req, res, next: calls.append("unreached"))
        app.use_error(lambda err, req, res, next: res.status(422).send(str(err)))

        async with TestClient(app) as client:
            response = await client.get("/items/x")

        assert response.status == 422
        assert response.text == "invalid id"
        assert calls == []

    async def test_params_are_exposed_on_request(self) -> None:
        app = App()
        app.get(
            "/users/:user/repos/:repo",
            lambda req, res, next: res.json(req.params),
        )

        async with TestClient(app) as client:
            response = await client.get("/users/ada/repos/engine%20notes")

        assert response.json() == {"user": "ada", "repo": "engine notes"}

    async def test_query_and_hash(self) -> None:
        app = App()
        app.get(
            "/search",
            lambda req, res, next: res.json({"q": req.query["q"], "hash": req.hash}),
        )

        async with TestClient(app) as client:
            response = await client.get("/search?q=perch#results")

        assert response.json() == {"q": "perch", "hash": "results"}


class TestNotFound:
    async def test_unmatched_path_is_404_reason_phrase(self) -> None:
        app = App()
        app.get("/", lambda req, res, next: res.send("home"))

        async with TestClient(app) as client:
            response = await client.get("/missing")

        assert response.status == 404
        assert response.text == "Not Found"
        assert response.content_type.startswith("text/plain")

    async def test_method_mismatch_is_404(self) -> None:
        app = App()
        app.get("/only-get", lambda req, res, next: res.send("ok"))

        async with TestClient(app) as client:
            response = await client.post("/only-get")

        assert response.status == 404

    async def test_trailing_slash_is_not_normalized(self) -> None:
        app = App()
        app.get("/users", lambda req, res, next: res.send("users"))

        async with TestClient(app) as client:
            assert (await client.get("/users")).status == 200
            assert (await client.get("/users/")).status == 404
