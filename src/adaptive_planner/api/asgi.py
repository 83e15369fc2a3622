"""ASGI entrypoint for the adaptive planner API."""

from adaptive_planner.api.app import create_app
from adaptive_planner.containers import build_container

app = create_app(build_container())
