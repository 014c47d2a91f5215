import json
from pathlib import Path

import pytest

from backup_config import (
    ASSETS_API,
    Config,
    Route,
    config_from_dict,
    load_json_config,
    parse_args,
)


def test_export_root_and_content_api():
    cfg = Config(repository="my-repo", output_folder="backups")

    assert cfg.export_root == Path("backups") / "my-repo"
    assert cfg.content_api == "https://my-repo.cdn.prismic.io/api/v2"
    assert cfg.assets_api == ASSETS_API
    assert cfg.timeout_sec is None


def test_content_api_override_trims_slash():
    cfg = Config(repository="r", content_api_url="http://localhost:8080/api/v2/")
    assert cfg.content_api == "http://localhost:8080/api/v2"


def test_config_is_immutable():
    cfg = Config(repository="r")
    with pytest.raises(Exception):
        cfg.repository = "other"


def test_routes_param():
    cfg = Config(repository="r", routes=(Route("page", "/", uid="home"), Route("blog", "/blog/:uid", lang="fr-fr")))

    assert json.loads(cfg.routes_param()) == [
        {"type": "page", "path": "/", "uid": "home"},
        {"type": "blog", "path": "/blog/:uid", "lang": "fr-fr"},
    ]
    assert Config(repository="r").routes_param() is None


def test_config_from_dict_accepts_camel_case():
    cfg = config_from_dict({
        "repositoryName": "my-repo",
        "accessToken": "read",
        "permanentToken": "write",
        "routes": [{"type": "page", "path": "/:uid"}],
    })

    assert cfg.repository == "my-repo"
    assert cfg.access_token == "read"
    assert cfg.permanent_token == "write"
    assert cfg.routes == (Route("page", "/:uid"),)
    assert cfg.output_folder == "."


@pytest.mark.parametrize("data", [
    {},
    {"repository": "  "},
    {"repository": "r", "routes": {"type": "page"}},
    {"repository": "r", "routes": [{"type": "page"}]},
])
def test_config_from_dict_rejects_invalid(data):
    with pytest.raises(ValueError):
        config_from_dict(data)


def test_load_json_config(tmp_path):
    path = tmp_path / "backup.json"
    path.write_text(json.dumps({
        "repository": "my-repo",
        "access_token": "read",
        "permanent_token": "write",
        "output": str(tmp_path / "out"),
        "timeout": 60,
        "assets_api": "http://localhost/assets",
    }))

    cfg = load_json_config(str(path))

    assert cfg.export_root == tmp_path / "out" / "my-repo"
    assert cfg.timeout_sec == 60
    assert cfg.assets_api == "http://localhost/assets"


def test_load_json_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_json_config(str(tmp_path / "nope.json"))


def test_load_json_config_not_an_object(tmp_path):
    path = tmp_path / "backup.json"
    path.write_text("[]")
    with pytest.raises(ValueError):
        load_json_config(str(path))


def test_parse_args_flags():
    cfg, args = parse_args([
        "--repository", "my-repo",
        "--access_token", "read",
        "--permanent_token", "write",
        "--routes", '[{"type": "page", "path": "/:uid"}]',
        "--output", "out",
        "--no_progress",
        "--log_level", "DEBUG",
    ])

    assert cfg.repository == "my-repo"
    assert cfg.routes == (Route("page", "/:uid"),)
    assert cfg.output_folder == "out"
    assert cfg.show_progress is False
    assert args.log_level == "DEBUG"


def test_parse_args_config_file(tmp_path):
    path = tmp_path / "backup.json"
    path.write_text(json.dumps({"repository": "from-file"}))

    cfg, _ = parse_args(["--config", str(path)])

    assert cfg.repository == "from-file"


def test_parse_args_requires_repository():
    with pytest.raises(SystemExit):
        parse_args([])
