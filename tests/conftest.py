# tests/conftest.py

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Добавляем корень проекта в PYTHONPATH, чтобы импортировался пакет balancelab
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from balancelab.core.engine import MineralComponent  # noqa: E402
from balancelab.core.rate_limit import limiter  # noqa: E402
from balancelab.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Сбрасываем rate limiter, чтобы лимиты не накапливались между тестами."""
    limiter.reset()
    yield


@pytest.fixture()
def client() -> TestClient:
    """
    Фикстура HTTP-клиента для тестирования FastAPI-приложения.
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def components() -> list[MineralComponent]:
    """Fe + SiO2 активны, Al2O3 выключен."""
    return [
        MineralComponent(id="fe", symbol="Fe", name="Iron", default_grade=60.0),
        MineralComponent(id="sio2", symbol="SiO2", name="Silica", default_grade=40.0),
        MineralComponent(
            id="al2o3", symbol="Al2O3", name="Alumina", default_grade=5.0, is_active=False
        ),
    ]
