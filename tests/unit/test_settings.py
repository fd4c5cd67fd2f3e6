import pytest
from pydantic import ValidationError

from flipbook.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_limits(self) -> None:
        s = Settings()
        assert s.max_file_size == 100 * 1024 * 1024
        assert s.min_file_size == 1024
        assert s.max_pages == 1000
        assert s.processing_timeout == 1800

    def test_default_queue_settings(self) -> None:
        s = Settings()
        assert s.queue_max_retries == 3
        assert s.queue_retry_delay == 2.0
        assert s.queue_concurrency == 2
        assert s.queue_rate_limit_max == 5
        assert s.queue_rate_limit_window == 60.0

    def test_default_cache_settings(self) -> None:
        s = Settings()
        assert s.cache_ttl == 300
        assert s.cache_max_size == 100

    def test_default_job_poll_interval(self) -> None:
        s = Settings()
        assert s.job_poll_interval_seconds == 5

    def test_default_pdf_engine(self) -> None:
        s = Settings()
        assert s.pdf_engine == "pdfplumber"

    def test_default_converter_chain(self) -> None:
        s = Settings()
        assert s.converter_chain == "pymupdf,pdfium,pdfplumber"


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_queue_max_retries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUEUE_MAX_RETRIES", "5")
        s = Settings()
        assert s.queue_max_retries == 5

    def test_loads_processing_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROCESSING_TIMEOUT", "90")
        s = Settings()
        assert s.processing_timeout == 90.0

    def test_loads_cache_ttl(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_TTL", "10")
        s = Settings()
        assert s.cache_ttl == 10.0


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_max_retries_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUEUE_MAX_RETRIES", "abc")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_concurrency_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUEUE_CONCURRENCY", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_cache_size_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_MAX_SIZE", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_pdf_engine_is_normalized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PDF_ENGINE", " PyMuPDF ")
        assert Settings().pdf_engine == "pymupdf"

    def test_unknown_pdf_engine_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PDF_ENGINE", "ghostscript")
        with pytest.raises(ValidationError):
            Settings()
