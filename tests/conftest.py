"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENV", "test")

from datetime import date  # noqa: E402

import pytest  # noqa: E402

from dental_clinic.models.user import User, UserRole  # noqa: E402
from tests.fakes import FakeRepository  # noqa: E402

DAY = date(2024, 1, 10)


@pytest.fixture
def dentists() -> list[User]:
    return [
        User(id=1, email="john@dentalclinic.com", first_name="John", last_name="Smith",
             role=UserRole.DENTIST, hashed_password="x"),
        User(id=2, email="maria@dentalclinic.com", first_name="Maria", last_name="Lopez",
             role=UserRole.DENTIST, hashed_password="x"),
        User(id=3, email="ana@dentalclinic.com", first_name="Ana", last_name="Silva",
             role=UserRole.DENTIST, hashed_password="x"),
        User(id=4, email="old@dentalclinic.com", first_name="Retired", last_name="Doc",
             role=UserRole.DENTIST, is_active=False, hashed_password="x"),
        User(id=5, email="desk@dentalclinic.com", first_name="Front", last_name="Desk",
             role=UserRole.RECEPTIONIST, hashed_password="x"),
    ]


@pytest.fixture
def repo(dentists: list[User]) -> FakeRepository:
    return FakeRepository(dentists=dentists, patients={1: "Jane Doe", 2: "Tom Hardy"})


@pytest.fixture
def day() -> date:
    return DAY
