"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import List, Sequence

from .bundle import BundleResult
from .collector import CollectReport


def format_bytes(num: float) -> str:
    suffixes = ["B", "KiB", "MiB", "GiB", "TiB"]
    value = float(num)
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}"
        value /= 1024
    return f"{value:.1f} TiB"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def report_rows(report: CollectReport) -> List[List[str]]:
    return [
        [
            result.name,
            "ok" if result.ok else "failed",
            result.path if result.ok else result.source,
            format_bytes(result.bytes_written) if result.ok else (result.error or ""),
        ]
        for result in report.results
    ]


def format_report(report: CollectReport) -> str:
    if report.error:
        return f"{report.address}: {report.error}"
    title = f"{report.address} ({report.base_url})"
    if not report.results:
        return f"{title}\n无端点"
    return f"{title}\n" + render_table(["端点", "状态", "位置", "大小 / 错误"], report_rows(report))


def format_bundle(result: BundleResult) -> str:
    lines = [format_report(report) for report in result.reports]
    saved = len(result.files)
    total = sum(len(report.results) for report in result.reports)
    lines.append(f"已保存 {saved} / {total} 个文件")
    if result.archive_path:
        lines.append(f"归档：{result.archive_path}")
    else:
        lines.append(f"目录：{result.directory}")
    return "\n\n".join(lines)


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded)
