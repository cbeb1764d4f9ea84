import os
from datetime import date

import pytest

os.environ.setdefault("ENROLLMENT_DATABASE_URL", "sqlite://")

from academy_calc.engine import generate_installments
from academy_calc_web.enrollment_store import EnrollmentStore


@pytest.fixture
def plan():
    return generate_installments("10000", date(2024, 1, 15))


@pytest.fixture
def store(tmp_path):
    return EnrollmentStore(f"sqlite:///{tmp_path / 'academy.sqlite3'}")


@pytest.fixture
def client(monkeypatch, store):
    from academy_calc_web import app as app_module

    monkeypatch.setattr(app_module, "enrollment_store", store)
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()
