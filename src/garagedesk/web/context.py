from __future__ import annotations

from flask import current_app, g

from ..config import AppConfig
from ..wiring import Services


def get_db():
    return current_app.extensions["garagedesk.db"]


def get_services() -> Services:
    return current_app.extensions["garagedesk.services"]


def get_config() -> AppConfig:
    return current_app.extensions["garagedesk.config"]


def current_user() -> dict:
    return g.user
