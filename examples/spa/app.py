"""Single-page app: static files, a JSON API, and the SPA fallback.

Files under ``public/`` are served directly. Any other GET that no
route claims gets ``index.html`` so the client-side router can take
over. API errors are rendered as JSON by a mounted error handler.

Run:
    python app.py
"""

from pathlib import Path

from perch import App

PUBLIC = Path(__file__).parent / "public"

app = App()

_todos: list[dict] = [{"id": 1, "title": "Write docs", "done": False}]


def require_json(request, response, next):
    if request.method in ("POST", "PUT") and not isinstance(request.body, dict):
        next(ValueError("Expected a JSON object"))
        return
    next()


app.use("/api", require_json)
app.static("/", PUBLIC, max_age=300)


@app.get("/api/todos")
def list_todos(request, response, next):
    response.json(_todos)


@app.post("/api/todos")
def create_todo(request, response, next):
    todo = {"id": len(_todos) + 1, "title": request.body.get("title", ""), "done": False}
    _todos.append(todo)
    response.status(201).json(todo)


@app.get("/api/todos/:id")
def show_todo(request, response, next):
    for todo in _todos:
        if str(todo["id"]) == request.params["id"]:
            response.json(todo)
            return
    next(LookupError(f"No todo {request.params['id']}"))


@app.use_error("/api")
def api_error(error, request, response, next):
    status = 404 if isinstance(error, LookupError) else 400
    response.status(status).json({"error": str(error)})


if __name__ == "__main__":
    app.listen(3000)
