from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from harvest.run import main, read_input_urls
from src.schemas import BatchStatus, InstagramScrapeResponse, WebScrapeResponse


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_read_input_urls(tmp_path):
    p = _write(tmp_path / "urls.txt", "# comment\n\nhttps://a.example/\nb.example\nnot-a-url\n")
    assert read_input_urls(p) == ["https://a.example/", "https://b.example", "not-a-url"]


def test_web_dry_run(tmp_path, capsys):
    urls = _write(tmp_path / "urls.txt", "https://a.example/\n")
    code = main(["web", "--topic", "coffee", "--input", str(urls), "--out", str(tmp_path / "out"), "--dry-run"])
    assert code == 0
    assert "Dry-run validation passed" in capsys.readouterr().out


def test_web_missing_input(tmp_path):
    code = main(["web", "--topic", "coffee", "--input", str(tmp_path / "none.txt"), "--out", str(tmp_path)])
    assert code == 2


def test_web_invalid_max_results(tmp_path):
    urls = _write(tmp_path / "urls.txt", "https://a.example/\n")
    code = main(["web", "--topic", "coffee", "--input", str(urls), "--out", str(tmp_path), "--max-results", "99"])
    assert code == 2


def test_bad_config(tmp_path):
    urls = _write(tmp_path / "urls.txt", "https://a.example/\n")
    cfg = _write(tmp_path / "cfg.yaml", "http: [oops\n")
    code = main(["web", "--topic", "t", "--input", str(urls), "--out", str(tmp_path), "--config", str(cfg)])
    assert code == 1


def test_instagram_requires_credentials(tmp_path, monkeypatch):
    monkeypatch.delenv("HARVEST_IG_USERNAME", raising=False)
    monkeypatch.delenv("HARVEST_IG_PASSWORD", raising=False)
    code = main(["instagram", "--target", "brand", "--out", str(tmp_path)])
    assert code == 2


@patch("harvest.run.ScraperService")
def test_web_run_writes_json_and_csv(mock_service_cls, tmp_path):
    urls = _write(tmp_path / "urls.txt", "https://a.example/\n")
    mock_service_cls.return_value.scrape_web.return_value = WebScrapeResponse(search_topic="coffee")
    out = tmp_path / "out"

    code = main(["web", "--topic", "coffee", "--input", str(urls), "--out", str(out), "--csv"])

    assert code == 0
    assert len(list(out.glob("scraped_data_*.json"))) == 1
    assert len(list(out.glob("scraped_data_*.csv"))) == 1
    mock_service_cls.return_value.close.assert_called_once()


@patch("harvest.run.ScraperService")
def test_instagram_error_status_exit_code(mock_service_cls, tmp_path, monkeypatch):
    monkeypatch.setenv("HARVEST_IG_USERNAME", "me")
    monkeypatch.setenv("HARVEST_IG_PASSWORD", "pw")
    mock_service_cls.return_value.scrape_instagram.return_value = InstagramScrapeResponse(
        target_handle="brand", status=BatchStatus.ERROR, message="Failed to login to Instagram",
    )
    out = tmp_path / "out"

    code = main(["instagram", "--target", "@brand", "--out", str(out)])

    assert code == 3
    files = list(out.glob("instagram_data_brand_*.json"))
    assert len(files) == 1
    assert json.loads(files[0].read_text(encoding="utf-8"))["status"] == "error"
