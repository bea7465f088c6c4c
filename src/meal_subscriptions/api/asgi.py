"""ASGI entrypoint for the subscription order API."""

from meal_subscriptions.api.app import create_app
from meal_subscriptions.containers import build_container

app = create_app(build_container())
