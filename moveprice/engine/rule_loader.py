from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from ..core.settings import settings
from .errors import EngineError
from .estimate_engine import EstimateEngine
from .rule_set import RuleSet
from .tariffs import TariffSettings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LoadedRules:
    ruleset: RuleSet
    engine: EstimateEngine
    mtime_ns: int


class RuleLoader:
    """
    Hot reload of a rule set file (thread-safe).

    - Keeps the last known-good engine active
    - On each get(): checks mtime_ns; if changed -> reload + validate
    - If reload fails: logs and keeps the previous engine
    - Every reload builds a fresh EstimateEngine; a live one is never mutated
    """

    def __init__(
        self,
        yaml_path: Optional[Union[str, Path]] = None,
        tariff_settings: Optional[TariffSettings] = None,
        **estimator_kwargs: Any,
    ):
        if yaml_path is None:
            yaml_path = settings.RULESET_PATH
        self.yaml_path = str(yaml_path)
        self.tariff_settings = tariff_settings
        self._estimator_kwargs = estimator_kwargs
        self._lock = threading.Lock()
        self._loaded: Optional[LoadedRules] = None

        # eager initial load (fail-fast if missing/invalid)
        self._loaded = self._load_from_disk_or_raise()
        logger.info(
            "ruleset_loaded",
            path=self.yaml_path,
            rules_version=self._loaded.ruleset.rule_set_version,
            mtime_ns=self._loaded.mtime_ns,
        )

    def get(self) -> LoadedRules:
        """
        Returns the current active (last-known-good) ruleset/engine.
        Performs a cheap mtime check and reloads if needed.
        """
        try:
            current_mtime = self._stat_mtime_ns()
        except FileNotFoundError:
            if self._loaded is None:
                raise
            logger.warning("ruleset_missing", path=self.yaml_path, keeping="previous")
            return self._loaded

        loaded = self._loaded
        if loaded is not None and current_mtime == loaded.mtime_ns:
            return loaded

        with self._lock:
            loaded = self._loaded
            # double-check after acquiring lock
            try:
                current_mtime = self._stat_mtime_ns()
            except FileNotFoundError:
                if loaded is None:
                    raise
                logger.warning("ruleset_missing", path=self.yaml_path, keeping="previous")
                return loaded

            if loaded is not None and current_mtime == loaded.mtime_ns:
                return loaded

            try:
                new_loaded = self._load_from_disk_or_raise(expected_mtime_ns=current_mtime)
            except (EngineError, OSError) as e:
                if loaded is None:
                    raise
                logger.error(
                    "ruleset_reload_failed",
                    path=self.yaml_path,
                    error=str(e),
                    keeping="previous",
                )
                return loaded

            self._loaded = new_loaded
            logger.info(
                "ruleset_reloaded",
                path=self.yaml_path,
                rules_version=new_loaded.ruleset.rule_set_version,
                mtime_ns=new_loaded.mtime_ns,
            )
            return new_loaded

    @property
    def engine(self) -> EstimateEngine:
        return self.get().engine

    # -----------------
    # internals
    # -----------------

    def _stat_mtime_ns(self) -> int:
        return os.stat(self.yaml_path).st_mtime_ns

    def _load_from_disk_or_raise(self, expected_mtime_ns: Optional[int] = None) -> LoadedRules:
        if expected_mtime_ns is None:
            expected_mtime_ns = self._stat_mtime_ns()

        engine = EstimateEngine.from_yaml_file(
            self.yaml_path, self.tariff_settings, **self._estimator_kwargs
        )
        return LoadedRules(ruleset=engine.ruleset, engine=engine, mtime_ns=expected_mtime_ns)
