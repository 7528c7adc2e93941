import os
from decimal import Decimal

import pytest


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Cantina Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
        "RATE_LIMIT_ENABLED": "false",
        "PURCHASE_GATEWAY": "local",
        "SUPABASE_URL": "",
        "SUPABASE_SERVICE_ROLE_KEY": "",
        "PAGSEGURO_TOKEN": "",
        "PAGSEGURO_WEBHOOK_SECRET": "",
        "ZAPI_BASE_URL": "",
        "ZAPI_INSTANCE_ID": "",
        "ZAPI_TOKEN": "",
        "ZAPI_SECURITY_TOKEN": "",
        "APP_BASE_URL": "https://cantina.example.com",
        "JOB_TOKEN": "job-secret",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()


@pytest.fixture
def db():
    from app.core.database import Base, SessionLocal, engine
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_student(db):
    """Create guardian + student + wallet rows and return the student."""
    from app.core.enums import PricingModel
    from app.models import Guardian, Student, StudentStatus, StudyPeriod, Wallet

    counter = {"n": 0}

    def _make(
        *,
        model=PricingModel.PREPAID,
        balance="0",
        credit_limit="0",
        alert_baseline=None,
        blocked=False,
        allow_negative_once_used=False,
        status=StudentStatus.ACTIVE,
        phone="(11) 98765-4321",
    ):
        counter["n"] += 1
        guardian = Guardian(full_name="Maria Souza", phone=phone, cpf=f"000.000.000-{counter['n']:02d}")
        db.add(guardian)
        db.flush()
        student = Student(
            guardian_id=guardian.id,
            full_name=f"Aluno {counter['n']}",
            grade="5A",
            period=StudyPeriod.MORNING,
            status=status,
            pricing_model=model,
        )
        db.add(student)
        db.flush()
        db.add(
            Wallet(
                student_id=student.id,
                balance=Decimal(balance),
                credit_limit=Decimal(credit_limit),
                model=model,
                blocked=blocked,
                allow_negative_once_used=allow_negative_once_used,
                alert_baseline=Decimal(alert_baseline) if alert_baseline is not None else None,
            )
        )
        db.commit()
        db.refresh(student)
        return student

    return _make


@pytest.fixture
def make_product(db):
    from app.models import Product

    def _make(name="Cheese bread", price="10.00", active=True):
        product = Product(name=name, price=Decimal(price), active=active)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make
