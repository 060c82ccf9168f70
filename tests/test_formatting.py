from debug_collector.collector import CollectReport, EndpointResult
from debug_collector.formatting import format_bytes, format_report, render_table


def test_format_bytes():
    assert format_bytes(512) == "512.0 B"
    assert format_bytes(2048) == "2.0 KiB"
    assert format_bytes(5 * 1024**3) == "5.0 GiB"


def test_render_table_aligns_columns():
    table = render_table(["a", "bbb"], [["long", "x"]])
    assert table.splitlines() == ["a    | bbb", "---- | ---", "long | x  "]


def test_report_shows_errors_and_sizes():
    report = CollectReport(
        address="host:1",
        base_url="http://host:1",
        results=[
            EndpointResult(name="heap", source="http://host:1/debug/pprof/heap?duration=0", path="/tmp/heap.gz", ok=True, bytes_written=2048),
            EndpointResult(name="mutex", source="http://host:1/debug/pprof/mutex?duration=0", path="/tmp/mutex.gz", ok=False, error="server response: 500 Internal Server Error - out of memory"),
        ],
    )
    text = format_report(report)
    assert "/tmp/heap.gz" in text
    assert "2.0 KiB" in text
    assert "out of memory" in text
    assert "/tmp/mutex.gz" not in text


def test_address_error_report():
    report = CollectReport(address="", base_url=None, error="error while parsing address '': no host")
    assert format_report(report) == ": error while parsing address '': no host"
