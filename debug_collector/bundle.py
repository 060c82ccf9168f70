"""Collect metrics and profiles from alpha and zero nodes into one debug-info bundle."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
import logging
import os
from pathlib import Path
import shutil
import tarfile
import tempfile
from typing import List, Optional, Sequence

import httpx

from .collector import (
    METRIC_TYPES,
    PROFILE_TYPES,
    CollectReport,
    DebugInfoError,
    collect_metrics,
    collect_profiles,
)

logger = logging.getLogger(__name__)


@dataclass
class DebugInfoOptions:
    alpha: str = "localhost:8080"
    zero: str = "localhost:6080"
    directory: Optional[str] = None
    archive: bool = True
    seconds: int = 30
    profiles: Sequence[str] = PROFILE_TYPES
    metrics: Sequence[str] = METRIC_TYPES


@dataclass
class BundleResult:
    directory: str
    archive_path: Optional[str] = None
    reports: List[CollectReport] = field(default_factory=list)

    @property
    def files(self) -> List[str]:
        return [result.path for report in self.reports for result in report.succeeded]


def collect_debug(options: DebugInfoOptions, client: Optional[httpx.Client] = None) -> List[CollectReport]:
    """Run every metrics batch, then every profile batch, alpha before zero."""
    targets = [(prefix, address) for prefix, address in (("alpha_", options.alpha), ("zero_", options.zero)) if address]
    reports: List[CollectReport] = []
    for prefix, address in targets:
        path_prefix = os.path.join(options.directory, prefix)
        reports.append(collect_metrics(address, path_prefix, options.seconds, options.metrics, client=client))
    for prefix, address in targets:
        path_prefix = os.path.join(options.directory, prefix)
        reports.append(collect_profiles(address, path_prefix, options.seconds, options.profiles, client=client))
    return reports


def archive_directory(directory: str, destination: Optional[str] = None) -> Path:
    """Pack ``directory`` into ``debuginfo-<timestamp>.tar.gz``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    target = Path(destination or os.getcwd()) / f"debuginfo-{stamp}.tar.gz"
    source = Path(directory)
    try:
        with tarfile.open(target, "w:gz") as tar:
            tar.add(source, arcname=source.name)
    except (OSError, tarfile.TarError) as exc:
        raise DebugInfoError(f"error while archiving {directory}: {exc}") from exc
    return target


def run_debuginfo(
    options: DebugInfoOptions,
    client: Optional[httpx.Client] = None,
    archive_destination: Optional[str] = None,
) -> BundleResult:
    """Collect a full debug-info bundle and optionally archive it."""
    if options.directory:
        try:
            os.makedirs(options.directory, exist_ok=True)
        except OSError as exc:
            raise DebugInfoError(f"error while creating directory {options.directory}: {exc}") from exc
    else:
        options = replace(options, directory=tempfile.mkdtemp(prefix="debuginfo-"))
    logger.info("using directory %s for debug info", options.directory)

    result = BundleResult(directory=options.directory)
    result.reports = collect_debug(options, client=client)

    if options.archive:
        archive_path = archive_directory(options.directory, archive_destination)
        logger.info("debug info archived in %s", archive_path)
        result.archive_path = str(archive_path)
        shutil.rmtree(options.directory, ignore_errors=True)
    return result
