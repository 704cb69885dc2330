"""Example application script.

    APP_PORT=8000 python examples/app.py serve

The ``/old`` -> ``/new`` -> ``/hello`` chain exists so redirect following
has something to follow.
"""

import sys

from webtestkit import Framework, Request, Response
from webtestkit.cli import main

app = Framework()


@app.route("/hello")
def hello(request: Request, response: Response) -> None:
    response.text("hello world")


@app.route("/users/{id}")
def get_user(request: Request, response: Response) -> None:
    response.json({"user_id": request.params["id"]})


@app.route("/old")
def old(request: Request, response: Response) -> None:
    response.redirect("/new", status=301)


@app.route("/new")
def new(request: Request, response: Response) -> None:
    response.redirect("/hello")


if __name__ == "__main__":
    sys.exit(main(app))
