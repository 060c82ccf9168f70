import json

import httpx

from debug_collector import cli
from debug_collector.bundle import run_debuginfo


def patch_transport(monkeypatch, handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    monkeypatch.setattr(cli, "run_debuginfo", lambda options: run_debuginfo(options, client=client))


def test_json_output_lists_saved_files(monkeypatch, tmp_path, capsys):
    patch_transport(monkeypatch, lambda request: httpx.Response(200, content=iter([b"data"])))

    code = cli.main(
        ["-a", "host:1", "-z", "", "-d", str(tmp_path), "--no-archive", "-s", "0", "-p", "heap", "-m", "state", "--json"]
    )

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["archive_path"] is None
    assert sorted(payload["files"]) == sorted([str(tmp_path / "alpha_state.gz"), str(tmp_path / "alpha_heap.gz")])
    assert payload["reports"][0]["results"][0]["source"] == "http://host:1/state"


def test_all_failures_exit_with_two(monkeypatch, tmp_path, capsys):
    patch_transport(monkeypatch, lambda request: httpx.Response(404))

    code = cli.main(["-a", "host:1", "-z", "", "-d", str(tmp_path), "--no-archive", "-s", "0", "-p", "heap", "-m", ""])

    assert code == 2
    out = capsys.readouterr().out
    assert "404 Not Found" in out
    assert list(tmp_path.iterdir()) == []


def test_unknown_profile_is_still_requested(monkeypatch, tmp_path):
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, content=iter([b"x"]))

    patch_transport(monkeypatch, handler)

    code = cli.main(["-a", "host:1", "-z", "", "-d", str(tmp_path), "--no-archive", "-p", "allocs", "-m", "", "--ui"])

    assert code == 0
    assert paths == ["/debug/pprof/allocs"]


def test_split_names_drops_blanks():
    assert cli._split_names("heap, goroutine,,", ("heap", "goroutine"), "profile") == ["heap", "goroutine"]
