"""
日志配置测试
"""
import logging

import orjson
import pytest

from fireime.engine import EngineConfig, create_session
from fireime.engine import logging as fire_logging
from fireime.engine.logging import JsonFormatter, setup_logging, configure_logging, log_execution_time


class TestLogging:

    def test_json_formatter(self):
        record = logging.LogRecord("fireime.test", logging.INFO, __file__, 10, "查询 %s", ("wo",), None)
        record.request_id = "abcd1234"
        data = orjson.loads(JsonFormatter().format(record))
        assert data["message"] == "查询 wo"
        assert data["level"] == "INFO"
        assert data["logger"] == "fireime.test"
        assert data["request_id"] == "abcd1234"

    def test_file_handlers(self, tmp_path, monkeypatch):
        monkeypatch.setattr(fire_logging, "LOG_DIR", tmp_path / "logs")
        logger = setup_logging("fireime.test_files", log_to_file=True, log_to_console=False)
        logger.error("写入失败")
        for handler in logger.handlers:
            handler.flush()
        assert (tmp_path / "logs" / "fireime.test_files.log").exists()
        assert "写入失败" in (tmp_path / "logs" / "fireime.test_files_error.log").read_text(encoding="utf-8")
        setup_logging("fireime.test_files", log_to_file=False, log_to_console=False)

    def test_setup_replaces_handlers(self):
        setup_logging("fireime.test_twice", log_to_file=False)
        logger = setup_logging("fireime.test_twice", log_to_file=False)
        assert len(logger.handlers) == 1


class TestConfigureLogging:
    """日志级别和格式来自 EngineConfig"""

    def teardown_method(self):
        configure_logging(EngineConfig(db_path="x.sqlite"))

    def test_level_and_json_from_config(self):
        logger = configure_logging(EngineConfig(db_path="x.sqlite", log_level="DEBUG", log_json=True))
        assert logger.name == "fireime.engine"
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

        api = logging.getLogger("fireime.api")
        assert api.level == logging.DEBUG
        assert isinstance(api.handlers[0].formatter, JsonFormatter)

    def test_create_session_applies_config(self, db_path):
        session = create_session(EngineConfig(code_mode="pinyin", db_path=db_path, log_level="ERROR"))
        try:
            assert logging.getLogger("fireime.engine").level == logging.ERROR
        finally:
            session.close()

    def test_rebuild_is_timed(self, make_session, caplog):
        session = make_session("wubi", 5)
        with caplog.at_level(logging.DEBUG, logger="fireime.engine"):
            session.rebuild("pinyin", 3)
        assert "rebuild 执行完成" in caplog.text


class TestLogExecutionTime:

    def test_logs_duration(self, caplog):
        logger = logging.getLogger("fireime.test_timing")

        @log_execution_time(logger)
        def work():
            return 42

        with caplog.at_level(logging.DEBUG, logger="fireime.test_timing"):
            assert work() == 42
        assert "work 执行完成" in caplog.text
        assert caplog.records[-1].duration_ms >= 0

    def test_logs_failure_and_reraises(self, caplog):
        logger = logging.getLogger("fireime.test_timing")

        @log_execution_time(logger)
        def broken():
            raise RuntimeError("boom")

        with caplog.at_level(logging.DEBUG, logger="fireime.test_timing"):
            with pytest.raises(RuntimeError):
                broken()
        assert "broken 执行失败" in caplog.text
