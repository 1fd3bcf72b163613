import dataclasses
import json
import pathlib
import typing

from .logging import getLogger

logger = getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ConfigConstants:
    DEFAULT_LOG_DIRNAME: typing.ClassVar[str] = ".rulefilter_logs"
    BACKENDS: typing.ClassVar[tuple[str, ...]] = ("z3", "bounded")

    @staticmethod
    def default_log_dir(base: pathlib.Path | None = None) -> pathlib.Path:
        """Return the default log directory (under the current directory)."""
        root = base if base is not None else pathlib.Path.cwd()
        return root / ConfigConstants.DEFAULT_LOG_DIRNAME


@dataclasses.dataclass(slots=True)
class SynthesisOptions:
    """
    Bounds for the counterexample guided predicate search.

    >>> opts = SynthesisOptions(max_iterations=4)
    >>> opts.to_dict()["max_iterations"]
    4
    >>> SynthesisOptions.from_dict({"search_radius": 2}).search_radius
    2
    """

    max_iterations: int = 16
    search_radius: int = 4
    max_examples: int = 4096
    max_witness_candidates: int = 64
    use_oracle_refutation: bool = True
    extra_literals: tuple[int, ...] = ()

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.search_radius < 1:
            raise ValueError("search_radius must be at least 1")
        if self.max_examples < 1:
            raise ValueError("max_examples must be at least 1")
        if self.max_witness_candidates < 1:
            raise ValueError("max_witness_candidates must be at least 1")
        self.extra_literals = tuple(int(v) for v in self.extra_literals)

    def to_dict(self) -> dict[str, typing.Any]:
        data = dataclasses.asdict(self)
        data["extra_literals"] = list(self.extra_literals)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, typing.Any]) -> "SynthesisOptions":
        return cls(**data)


@dataclasses.dataclass(slots=True)
class OracleOptions:
    """
    Settings shared by the arithmetic oracle backends.

    Attributes:
        timeout_ms: Solver timeout per query (0 = no timeout).
        max_proof_size: z3 resource limit per query (0 = unlimited).
        search_radius: Half width of the integer box the bounded oracle checks.
        max_assignments: Upper bound on the points the bounded oracle visits
            per query.
    """

    timeout_ms: int = 2000
    max_proof_size: int = 0
    search_radius: int = 4
    max_assignments: int = 200_000

    def to_dict(self) -> dict[str, typing.Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, typing.Any]) -> "OracleOptions":
        return cls(**data)


@dataclasses.dataclass(slots=True, repr=False)
class FilterConfiguration:
    """
    Run-wide settings, loadable from a JSON file.

    >>> cfg = FilterConfiguration.from_dict({"oracle_backend": "bounded"})
    >>> cfg.oracle_backend
    'bounded'
    >>> cfg.synthesis.max_iterations
    16
    """

    path: pathlib.Path | None = None
    synthesis: SynthesisOptions = dataclasses.field(default_factory=SynthesisOptions)
    oracle: OracleOptions = dataclasses.field(default_factory=OracleOptions)
    oracle_backend: str = "z3"
    log_dir: pathlib.Path | None = None
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.oracle_backend not in ConfigConstants.BACKENDS:
            raise ValueError(
                f"Unknown oracle backend {self.oracle_backend!r}; "
                f"expected one of {', '.join(ConfigConstants.BACKENDS)}"
            )

    def __repr__(self) -> str:
        return (
            f"FilterConfiguration(path={self.path}, backend={self.oracle_backend}, "
            f"synthesis={self.synthesis}, oracle={self.oracle})"
        )

    @property
    def effective_log_dir(self) -> pathlib.Path:
        if self.log_dir is not None:
            return self.log_dir
        return ConfigConstants.default_log_dir()

    def to_dict(self) -> dict[str, typing.Any]:
        return {
            "synthesis": self.synthesis.to_dict(),
            "oracle": self.oracle.to_dict(),
            "oracle_backend": self.oracle_backend,
            "log_dir": None if self.log_dir is None else self.log_dir.as_posix(),
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, typing.Any], path: pathlib.Path | None = None
    ) -> "FilterConfiguration":
        log_dir = data.get("log_dir")
        return cls(
            path=path,
            synthesis=SynthesisOptions.from_dict(data.get("synthesis", {})),
            oracle=OracleOptions.from_dict(data.get("oracle", {})),
            oracle_backend=data.get("oracle_backend", "z3"),
            log_dir=pathlib.Path(log_dir) if log_dir else None,
            log_level=data.get("log_level", "WARNING"),
        )

    @classmethod
    def from_file(cls, path: pathlib.Path | str) -> "FilterConfiguration":
        """
        Loads the configuration from a JSON file.

        Raises:
            FileNotFoundError: If the configuration file cannot be found.
            json.JSONDecodeError: If the file is not valid JSON.
        """
        config_path = pathlib.Path(path)
        logger.info("Loading configuration from %s", config_path)
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except FileNotFoundError:
            logger.error("Configuration file not found: %s", config_path)
            raise
        except json.JSONDecodeError as e:
            logger.error("Failed to parse configuration %s: %s", config_path, e)
            raise
        return cls.from_dict(data, path=config_path)

    def save(self, path: pathlib.Path | str | None = None) -> None:
        """Writes the configuration back to ``path`` (or where it was loaded from)."""
        target = pathlib.Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("No path to save the configuration to")
        logger.info("Saving configuration to %s", target)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as fp:
            json.dump(self.to_dict(), fp, indent=2)
        self.path = target
