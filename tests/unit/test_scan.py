from __future__ import annotations

import json
from pathlib import Path

from mediasync.media.pathing import MediaContext
from mediasync.media.scan import collect_json_files, scan_content, transform_content

PREFIX = "https://cms.example/media/"


def _context(tmp_path: Path) -> MediaContext:
    return MediaContext(
        media_prefix=PREFIX,
        media_dir="media",
        media_output_dir=tmp_path / "public" / "media",
    )


def _write(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_collect_json_files_recurses_and_filters(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(content / "home.json", {})
    _write(content / "pages" / "about.json", {})
    (content / "pages" / "notes.txt").write_text("x", encoding="utf-8")

    files = collect_json_files(content)

    assert sorted(path.relative_to(content).as_posix() for path in files) == [
        "home.json",
        "pages/about.json",
    ]
    assert collect_json_files(tmp_path / "missing") == []


def test_transform_content_visits_nested_strings() -> None:
    data = {
        "title": "Home",
        "blocks": [
            {"image": {"url": "a"}},
            ["b", 1, None, True],
        ],
        "count": 3,
    }

    result, modified = transform_content(data, lambda value: value.upper())

    assert modified is True
    assert result is data
    assert data["title"] == "HOME"
    assert data["blocks"][0]["image"]["url"] == "A"
    assert data["blocks"][1] == ["B", 1, None, True]
    assert data["count"] == 3


def test_transform_content_reports_unchanged() -> None:
    data = {"a": ["x", {"b": "y"}]}

    _, modified = transform_content(data, lambda value: value)

    assert modified is False


def test_transform_content_handles_top_level_string() -> None:
    result, modified = transform_content("a", lambda value: "b")

    assert result == "b"
    assert modified is True


def test_scan_content_deduplicates_and_keeps_all_documents(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(
        content / "a.json",
        {"hero": f"{PREFIX}pages/home/hero.jpg?w=400", "gallery": [f"{PREFIX}pages/home/1.jpg"]},
    )
    _write(content / "b.json", {"blocks": [{"image": f"{PREFIX}pages/home/hero.jpg?w=1200"}]})
    _write(content / "c.json", {"title": "No media here"})

    result = scan_content(content, _context(tmp_path))

    assert result.files_scanned == 3
    assert len(result.documents) == 3
    assert list(result.assets) == ["media/pages/home/hero.jpg", "media/pages/home/1.jpg"]
    # First occurrence wins for the canonical remote URL.
    assert result.assets["media/pages/home/hero.jpg"].remote_url.endswith("?w=400")


def test_scan_content_skips_malformed_files(tmp_path: Path) -> None:
    content = tmp_path / "content"
    content.mkdir()
    (content / "broken.json").write_text("{not json", encoding="utf-8")
    (content / "binary.json").write_bytes(b"\xff\xfe\x00")
    _write(content / "ok.json", {"img": f"{PREFIX}x.png"})

    result = scan_content(content, _context(tmp_path))

    assert result.files_scanned == 3
    assert {path.name for path in result.skipped_files} == {"broken.json", "binary.json"}
    assert [doc.path.name for doc in result.documents] == ["ok.json"]
    assert list(result.assets) == ["media/x.png"]


def test_scan_content_does_not_modify_files(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(content / "a.json", {"hero": f"{PREFIX}a.jpg"})
    before = (content / "a.json").read_bytes()

    scan_content(content, _context(tmp_path))

    assert (content / "a.json").read_bytes() == before
