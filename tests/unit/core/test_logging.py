import logging
import pathlib
import tempfile
import unittest

from rulefilter.core import (
    LevelFlag,
    LoggerConfigurator,
    RuleFilterLogger,
    configure_loggers,
    getLogger,
    reset_loggers,
)
from rulefilter.core.logging import LOG_FILENAME, Z3_QUERY_FILENAME, RuleFilterFormatter


class TestLoggerConfigurator(unittest.TestCase):
    def setUp(self):
        # Ensure a test logger exists under our prefix
        self.prefix = "rulefilter"
        self.test_logger_name = f"{self.prefix}.testunit"
        self.logger = getLogger(self.test_logger_name)
        self.logger.setLevel(logging.WARNING)

    def test_available_loggers_with_prefix(self):
        names = LoggerConfigurator.available_loggers(self.prefix)
        self.assertIn(self.test_logger_name, names)
        # statically configured loggers are listed even before first use
        self.assertIn("rulefilter.z3_queries", names)

    def test_available_loggers_multiple_prefixes(self):
        names = LoggerConfigurator.available_loggers(
            ["RULEFILTER.TESTUNIT", "nothing.here"], case_insensitive=True
        )
        self.assertIn(self.test_logger_name, names)
        self.assertTrue(all(n.startswith(self.test_logger_name) for n in names))

    def test_set_level_changes_level(self):
        LoggerConfigurator.set_level(self.test_logger_name, "DEBUG")
        self.assertEqual(self.logger.level, logging.DEBUG)
        self.assertEqual(LoggerConfigurator.get_level(self.test_logger_name), logging.DEBUG)

    def test_set_level_invalid_raises(self):
        with self.assertRaises(ValueError):
            LoggerConfigurator.set_level(self.test_logger_name, "NOTALEVEL")

    def test_getlogger_returns_subclass(self):
        self.assertIsInstance(self.logger, RuleFilterLogger)
        self.assertIs(getLogger(self.test_logger_name), self.logger)


class TestMDC(unittest.TestCase):
    def tearDown(self):
        RuleFilterLogger.reset_rule()

    def test_rule_update(self):
        """The rule being classified is carried via the MDC."""
        log = getLogger("rulefilter.testunit")
        log.update_rule("rewrite((x + 0), x)")
        self.assertEqual(log.get_mdc("rule"), "rewrite((x + 0), x)")
        log.reset_rule()
        self.assertFalse(log.get_mdc("rule"))

    def test_records_carry_rule(self):
        log = getLogger("rulefilter.testunit")
        log.update_rule("rewrite(y, x)")
        record = log.makeRecord(log.name, logging.INFO, __file__, 1, "msg", (), None)
        self.assertEqual(record.rule, "rewrite(y, x)")

    def test_formatter_shows_rule_context(self):
        formatter = RuleFilterFormatter("%(levelname)s%(rule_context)s - %(message)s")
        log = getLogger("rulefilter.testunit")
        log.update_rule("rewrite(y, x)")
        record = log.makeRecord(log.name, logging.INFO, __file__, 1, "msg", (), None)
        self.assertEqual(formatter.format(record), "INFO [rewrite(y, x)] - msg")
        log.reset_rule()
        record = log.makeRecord(log.name, logging.INFO, __file__, 1, "msg", (), None)
        self.assertEqual(formatter.format(record), "INFO - msg")


class TestLevelFlag(unittest.TestCase):
    def test_flag_follows_level_changes(self):
        name = "rulefilter.testunit.flag"
        log = getLogger(name)
        log.setLevel(logging.INFO)
        LevelFlag.bump_config_version()
        self.assertFalse(log.debug_on)
        self.assertTrue(log.info_on)
        LoggerConfigurator.set_level(name, "DEBUG")
        self.assertTrue(log.debug_on)


class TestConfigureLoggers(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.log_dir = pathlib.Path(self._tmp.name) / "logs"

    def tearDown(self):
        reset_loggers()
        self._tmp.cleanup()

    def test_creates_log_files(self):
        configure_loggers(self.log_dir, console_level="error")
        logging.getLogger("rulefilter").info("hello")
        for handler in logging.getLogger("rulefilter").handlers:
            handler.flush()
        self.assertTrue((self.log_dir / LOG_FILENAME).exists())
        self.assertIn("hello", (self.log_dir / LOG_FILENAME).read_text())
        self.assertTrue((self.log_dir / Z3_QUERY_FILENAME).exists())

    def test_reset_detaches_file_handlers(self):
        configure_loggers(self.log_dir, console_level="error")
        reset_loggers()
        self._tmp.cleanup()
        for name in ("rulefilter", "rulefilter.rules.classifier", "rulefilter.z3_queries"):
            with self.subTest(name=name):
                log = logging.getLogger(name)
                self.assertEqual(log.handlers, [])
                self.assertTrue(log.propagate)
                # nothing may reopen a file under the removed directory
                log.info("after reset")
        self.assertFalse(self.log_dir.exists())


if __name__ == "__main__":
    unittest.main()
