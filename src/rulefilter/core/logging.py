import collections
import dataclasses
import functools
import logging
import logging.config
import pathlib
import threading
import typing

LOG_FILENAME = "rulefilter.log"
Z3_QUERY_FILENAME = "z3_queries.smt2"

_config = collections.Counter(version=0)


@dataclasses.dataclass(slots=True)
class LevelFlag:
    """
    LevelFlag provides a fast, zero-allocation cached boolean check for whether a logger is
    enabled for a given level.

    It avoids repeated calls to logger.isEnabledFor(level) in the synthesis loop, and
    automatically refreshes its cache when logging configuration changes.

    Example:
        logger = getLogger("rulefilter.rules.synthesis")
        debug_on = LevelFlag(logger.name, logging.DEBUG)

        # In a hot loop:
        if debug_on:
            logger.debug("candidate %s", render(candidate))
    """

    _logger_name: str
    _level: int
    _last_version: int = dataclasses.field(default=-1, init=False)
    _cached: bool = dataclasses.field(default=False, init=False)

    def __bool__(self) -> bool:
        current = self.get_config_version()
        if self._last_version != current:
            # config changed (or first call) -> re-compute once
            self._cached = getLogger(self._logger_name).isEnabledFor(self._level)
            self._last_version = current
        return self._cached

    def __repr__(self):
        lvlname = logging.getLevelName(self._level)
        return f"<LevelFlag {self._logger_name}>={lvlname}>"

    @staticmethod
    def bump_config_version() -> None:
        _config["version"] += 1

    @staticmethod
    def get_config_version() -> int:
        return _config["version"]


class RuleFilterLogger(logging.Logger):
    """Logger that supports a per-thread Mapped Diagnostic Context (MDC)."""

    _mdc_local: "threading.local" = threading.local()

    @classmethod
    def mdc(cls) -> typing.Mapping[str, typing.Any]:
        if not getattr(cls._mdc_local, "mdc", None):
            cls.set_mdc({"rule": ""})
        return getattr(cls._mdc_local, "mdc", {})

    @classmethod
    def set_mdc(cls, d: dict[str, typing.Any]) -> None:
        cls._mdc_local.mdc = d

    # ------------------------------------------------------------------
    # Quick level checks (cached)
    # ------------------------------------------------------------------
    @functools.cached_property
    def debug_on(self) -> LevelFlag:  # noqa: D401
        """Fast flag: is DEBUG enabled for this logger?"""
        return LevelFlag(self.name, logging.DEBUG)

    @functools.cached_property
    def info_on(self) -> LevelFlag:  # noqa: D401
        return LevelFlag(self.name, logging.INFO)

    # ---------------------------------------------------------------------
    # MDC helpers
    # ---------------------------------------------------------------------
    @classmethod
    def add_mdc(cls, key: str, value: typing.Any) -> None:
        """Add or update a key/value pair to the thread-local MDC."""
        d = dict(cls.mdc())
        d[key] = value
        cls.set_mdc(d)

    @classmethod
    def get_mdc(cls, key: str, default: typing.Any | None = None):
        """Return the value stored under *key* in the MDC (or *default*)."""
        return cls.mdc().get(key, default)

    @classmethod
    def remove_mdc(cls, key: str) -> None:
        """Remove *key* from the MDC if present."""
        d = dict(cls.mdc())
        d.pop(key, None)
        cls.set_mdc(d)

    # The classification pipeline stores the rule being processed so that
    # every record emitted while handling it can be traced back.
    @classmethod
    def update_rule(cls, rule_text: str) -> None:
        cls.add_mdc("rule", rule_text)

    @classmethod
    def reset_rule(cls) -> None:
        cls.remove_mdc("rule")

    def makeRecord(
        self,
        name,
        level,
        fn,
        lno,
        msg,
        args,
        exc_info,
        func=None,
        extra: dict[str, typing.Any] | None = None,
        sinfo=None,
    ):
        """Inject the current MDC into every ``LogRecord`` that we create."""
        if not extra:
            extra = {}
        extra.update(self.mdc())
        return super().makeRecord(
            name,
            level,
            fn,
            lno,
            msg,
            args,
            exc_info,
            func=func,
            extra=extra,
            sinfo=sinfo,
        )


class RuleFilterFormatter(logging.Formatter):
    """Formatter that renders the MDC rule (when set) after the level name."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        rule = getattr(record, "rule", "")
        if rule:
            record.rule_context = f" [{rule}]"
        else:
            record.rule_context = ""
        return super().format(record)


# File paths for handlers are set to `None` initially and will be populated
# by the `configure_loggers` function.
conf: dict[str, typing.Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "RuleFilterFormatter": {
            "()": RuleFilterFormatter,
            "format": "%(asctime)s - %(name)s - %(levelname)s%(rule_context)s - %(message)s",
        },
        "rawFormatter": {
            "format": "%(message)s",
        },
    },
    "handlers": {
        "consoleHandler": {
            "class": "logging.StreamHandler",
            "level": "WARNING",
            "formatter": "RuleFilterFormatter",
            # stdout carries the classification report
            "stream": "ext://sys.stderr",
        },
        "defaultFileHandler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "RuleFilterFormatter",
            "filename": None,
        },
        "z3FileHandler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "rawFormatter",
            "filename": None,
        },
    },
    "loggers": {
        "rulefilter": {
            "level": "INFO",
            "handlers": ["consoleHandler", "defaultFileHandler"],
            "propagate": False,
        },
        "rulefilter.rules.synthesis": {
            "level": "INFO",
            "handlers": ["defaultFileHandler"],
            "propagate": False,
        },
        "rulefilter.rules.classifier": {
            "level": "INFO",
            "handlers": ["consoleHandler", "defaultFileHandler"],
            "propagate": False,
        },
        "rulefilter.z3_queries": {
            "level": "INFO",
            "handlers": ["z3FileHandler"],
            "propagate": False,
        },
    },
    "root": {
        "level": "WARNING",
        "handlers": ["consoleHandler"],
    },
}


class LoggerConfigurator:
    """Query and change logger levels at run time (``--log-level``)."""

    @staticmethod
    def available_loggers(
        prefix: str | typing.Iterable[str] | None = None,
        case_insensitive: bool = False,
    ) -> list[str]:
        """Sorted names of every known logger, optionally under ``prefix``.

        Known means created through ``getLogger`` or declared in ``conf``. A
        name is under a prefix when it equals it or starts with ``prefix.``;
        ``prefix`` may also be a collection of prefixes.
        """
        names = {
            name
            for name, logger in logging.Logger.manager.loggerDict.items()
            if isinstance(logger, logging.Logger)
        }
        names.update(conf["loggers"])
        if prefix is None:
            return sorted(names)

        prefixes = [prefix] if isinstance(prefix, str) else list(prefix)
        if case_insensitive:
            prefixes = [p.lower() for p in prefixes]

        def match(name: str) -> bool:
            if case_insensitive:
                name = name.lower()
            return any(name == p or name.startswith(p + ".") for p in prefixes)

        return sorted(n for n in names if match(n))

    @staticmethod
    def get_level(name: str) -> int:
        return getLogger(name).getEffectiveLevel()

    @staticmethod
    def set_level(logger_name: str, level_name: str) -> None:
        """Set ``logger_name`` to a named level (``DEBUG`` ... ``CRITICAL``).

        Raises:
            ValueError: ``level_name`` is not a logging level.
        """
        lvl = getattr(logging, level_name.upper(), None)
        if not isinstance(lvl, int):
            raise ValueError(f"Unknown logging level: {level_name}")
        getLogger(logger_name, lvl).setLevel(lvl)
        LevelFlag.bump_config_version()


def configure_loggers(
    log_dir: str | pathlib.Path, console_level: str = "WARNING"
) -> None:
    """
    Configures the loggers using a dictionary, creating log files in the specified directory.
    """
    log_dir = pathlib.Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    conf["handlers"]["defaultFileHandler"]["filename"] = (
        log_dir / LOG_FILENAME
    ).as_posix()
    conf["handlers"]["z3FileHandler"]["filename"] = (
        log_dir / Z3_QUERY_FILENAME
    ).as_posix()
    conf["handlers"]["consoleHandler"]["level"] = console_level.upper()

    logging.config.dictConfig(conf)
    LevelFlag.bump_config_version()


def reset_loggers() -> None:
    """Undo :func:`configure_loggers`.

    Closes and detaches the handlers declared in ``conf`` from the
    configured loggers and from root, so no later record tries to reopen a
    log file whose directory is gone. Other handlers are left alone. The
    named loggers propagate to root again.
    """
    for name in (*conf["loggers"], None):
        target = logging.getLogger(name)
        for handler in list(target.handlers):
            if handler.get_name() not in conf["handlers"]:
                continue
            target.removeHandler(handler)
            handler.close()
        if name is not None:
            target.propagate = True
    LevelFlag.bump_config_version()


def getLogger(name: str, default_level: int = logging.INFO) -> RuleFilterLogger:
    """Return a :class:`RuleFilterLogger`.

    When wrapping an existing logger whose ``propagate`` flag is *False*
    **and** that has **no handlers**, the record would be lost. We flip
    ``propagate`` back to *True* so that messages bubble to the root
    handlers.
    """

    name = name or __name__
    base = logging.getLogger(name)
    if isinstance(base, RuleFilterLogger):
        return base
    loglvl = base.level
    if loglvl == logging.NOTSET or loglvl < default_level:
        loglvl = default_level
    new = RuleFilterLogger(base.name, level=loglvl)
    new.handlers = list(base.handlers)
    new.filters = list(base.filters)
    new.propagate = base.propagate
    new.disabled = base.disabled
    # Preserve the hierarchical parent so that records still bubble up to
    # root handlers.
    new.parent = base.parent
    if not new.handlers and not new.propagate:
        new.propagate = True

    # replace it in the manager so future getLogger(...) calls return the subclass
    logging.Logger.manager.loggerDict[name] = new
    return new
