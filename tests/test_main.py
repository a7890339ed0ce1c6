import json

from doc_harvester import main as cli
from doc_harvester.errors import NoFilesDownloaded
from doc_harvester.models import RunSummary
from doc_harvester.pipeline import HarvestResult


def test_writes_archive(tmp_path, monkeypatch, capsys):
    docs_file = tmp_path / "docs.json"
    docs_file.write_text(json.dumps({"documents": [{"url": "https://a.com/x.pdf", "name": "x"}]}))
    seen = {}

    async def fake_run(config, request):
        seen["request"] = request
        summary = RunSummary(total_requested=1)
        summary.add_success("https://a.com/x.pdf", "x_idx0.pdf", 2048)
        return HarvestResult(archive=b"zipbytes", file_name="documents-drive-now.zip",
                             summary=summary.finalize())

    monkeypatch.setattr(cli, "run_harvest", fake_run)
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"

    code = cli.main(["--documents", str(docs_file), "--output", str(out_dir),
                     "--config", str(tmp_path / "missing.yaml")])

    assert code == 0
    assert (out_dir / "documents-drive-now.zip").read_bytes() == b"zipbytes"
    assert seen["request"].documents == [{"url": "https://a.com/x.pdf", "name": "x"}]
    assert "2.0 KB" in capsys.readouterr().out


def test_zero_successes_exit_code(tmp_path, monkeypatch, capsys):
    async def fake_run(config, request):
        summary = RunSummary(total_requested=1)
        summary.add_failure(request.possible_url, "doc_idx0.pdf", ["HTTP 403: Forbidden"])
        raise NoFilesDownloaded("No files downloaded", summary.finalize())

    monkeypatch.setattr(cli, "run_harvest", fake_run)
    monkeypatch.chdir(tmp_path)

    code = cli.main(["--url", "https://a.com/x.pdf", "--output", str(tmp_path),
                     "--config", str(tmp_path / "missing.yaml")])

    assert code == 1
    assert "HTTP 403: Forbidden" in capsys.readouterr().out


def test_format_bytes():
    assert cli._format_bytes(512) == "512 B"
    assert cli._format_bytes(3 * 1024 ** 2) == "3.0 MB"
