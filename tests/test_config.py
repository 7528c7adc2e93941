from app.core.config import Settings, get_settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://cantina.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://cantina.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_settings_read_environment():
    settings = get_settings()
    assert settings.database_url.startswith("sqlite")
    assert settings.rate_limit_enabled is False
    assert settings.purchase_gateway == "local"


def test_settings_defaults(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "x")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.delenv("PIX_EXPIRATION_MINUTES", raising=False)
    monkeypatch.delenv("OUTBOX_BATCH_SIZE", raising=False)
    settings = Settings(_env_file=None)
    assert settings.pix_expiration_minutes == 30
    assert settings.outbox_batch_size == 20
    assert settings.remote_gateway_timeout_seconds == 15


def test_engine_options_for_postgres_and_sqlite():
    from sqlalchemy.pool import StaticPool

    from app.core.database import engine_options, normalize_database_url

    url = normalize_database_url("postgresql://cantina:pw@db.example.com:5432/cantina")
    assert url.startswith("postgresql+psycopg://")
    options = engine_options(url)
    assert options["connect_args"]["sslmode"] == "require"
    assert options["pool_size"] == get_settings().db_pool_size

    local = engine_options("postgresql+psycopg://cantina:pw@localhost/cantina")
    assert "sslmode" not in local["connect_args"]

    memory = engine_options("sqlite+pysqlite:///:memory:")
    assert memory["poolclass"] is StaticPool
    assert memory["connect_args"] == {"check_same_thread": False}
