"""Entry point for the debug-collector command line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Sequence

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .bundle import BundleResult, DebugInfoOptions, run_debuginfo
from .collector import METRIC_TYPES, PROFILE_TYPES, CollectReport, DebugInfoError
from .formatting import format_bundle, format_bytes

logger = logging.getLogger("debug_collector")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    options = DebugInfoOptions(
        alpha=args.alpha,
        zero=args.zero,
        directory=args.directory,
        archive=args.archive,
        seconds=args.seconds,
        profiles=_split_names(args.profiles, PROFILE_TYPES, "profile"),
        metrics=_split_names(args.metrics, METRIC_TYPES, "metric"),
    )

    try:
        result = run_debuginfo(options)
    except DebugInfoError as exc:
        logger.error("%s", exc)
        return 1

    if args.json:
        print(_to_json(result))
    elif args.ui:
        _render_rich(result)
    else:
        print(format_bundle(result))

    attempted = any(report.results or report.error for report in result.reports)
    if attempted and not result.files:
        return 2
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="debug-collector",
        description="从 alpha / zero 节点收集 pprof 性能剖析与指标数据。",
    )
    parser.add_argument("-a", "--alpha", default="localhost:8080", help="alpha 节点地址，留空则跳过")
    parser.add_argument("-z", "--zero", default="localhost:6080", help="zero 节点地址，留空则跳过")
    parser.add_argument("-d", "--directory", default=None, help="保存结果的目录，默认使用临时目录")
    parser.add_argument(
        "--no-archive", dest="archive", action="store_false", help="不打包为 tar.gz，保留原始目录"
    )
    parser.add_argument("-s", "--seconds", type=int, default=30, help="profile / trace 采集时长（秒）")
    parser.add_argument(
        "-p", "--profiles", default=",".join(PROFILE_TYPES), help="逗号分隔的 pprof 类型列表"
    )
    parser.add_argument("-m", "--metrics", default=",".join(METRIC_TYPES), help="逗号分隔的指标端点列表")
    parser.add_argument("--json", action="store_true", help="以 JSON 输出收集结果")
    parser.add_argument("--ui", action="store_true", help="以 Rich 风格输出更美观的终端 UI")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    return parser


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _split_names(value: str, known: Sequence[str], kind: str) -> List[str]:
    names = [name.strip() for name in value.split(",") if name.strip()]
    for name in names:
        if name not in known:
            logger.warning("unknown %s type %r, valid types: %s", kind, name, ", ".join(known))
    return names


def _to_json(result: BundleResult) -> str:
    payload: Dict[str, Any] = asdict(result)
    payload["files"] = result.files
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _render_rich(result: BundleResult) -> None:
    console = Console()

    for report in result.reports:
        console.print(_rich_report_table(report))

    saved = len(result.files)
    total = sum(len(report.results) for report in result.reports)
    location = f"归档：{result.archive_path}" if result.archive_path else f"目录：{result.directory}"
    style = "bold green" if saved == total else "bold yellow"
    console.print(Panel(f"已保存 {saved} / {total} 个文件\n{location}", style=style))


def _rich_report_table(report: CollectReport) -> Table | Panel:
    if report.error:
        return Panel(escape(f"{report.address}：{report.error}"), style="bold red")

    table = Table(title=f"{report.address} ({report.base_url})", box=box.SIMPLE_HEAD)
    table.add_column("端点", style="bold")
    table.add_column("状态")
    table.add_column("位置")
    table.add_column("大小 / 错误", justify="right")

    if not report.results:
        table.add_row("-", "无端点", "-", "-")
        return table

    for endpoint in report.results:
        if endpoint.ok:
            table.add_row(endpoint.name, "[green]ok[/green]", escape(endpoint.path), format_bytes(endpoint.bytes_written))
        else:
            table.add_row(endpoint.name, "[red]failed[/red]", escape(endpoint.source), escape(endpoint.error or ""))
    return table


if __name__ == "__main__":
    sys.exit(main())
