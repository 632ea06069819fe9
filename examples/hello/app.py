"""Hello World: the simplest perch app.

Demonstrates routes, path parameters, middleware, response chaining,
and an error handler.

Run:
    python app.py
"""

from perch import App

app = App()


@app.use
def powered_by(request, response, next):
    response.set("X-Powered-By", "perch")
    next()


@app.get("/")
def index(request, response, next):
    response.send("Hello, World!")


@app.get("/greet/:name")
def greet(request, response, next):
    response.send(f"Hello, {request.params['name']}!")


@app.get("/api/status")
def status(request, response, next):
    response.json({"status": "ok", "version": "0.1.0"})


@app.get("/custom")
def custom(request, response, next):
    response.status(201).set("X-Custom", "perch").send("Created")


@app.get("/divide/:a/:b")
def divide(request, response, next):
    a, b = int(request.params["a"]), int(request.params["b"])
    response.json({"result": a / b})


@app.use_error
def arithmetic_error(error, request, response, next):
    if isinstance(error, (ZeroDivisionError, ValueError)):
        response.status(400).json({"error": str(error)})
        return
    next(error)


if __name__ == "__main__":
    app.listen(3000, lambda: print("Listening on http://localhost:3000"))
