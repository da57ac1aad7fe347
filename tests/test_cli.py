"""Tests for the command line interface."""

import pytest

from legacytext import cli
from legacytext.structures import LegacySource, TextElement, TextGroup


@pytest.fixture
def clean_config(tmp_path, monkeypatch):
    """Run with no configuration files or LEGACYTEXT_* variables."""
    from legacytext import configuration

    for name in ("LEGACYTEXT_ARCHIVE", "LEGACYTEXT_SOURCE", "LEGACYTEXT_VERBOSE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    configuration._load_settings.cache_clear()
    yield
    configuration._load_settings.cache_clear()


class TestLoadDatabase:
    def test_loads_dump(self, token_dump):
        exit_code, database, summary, message = cli.load_database(
            archive_file=str(token_dump), source=None, verbose=False
        )

        assert exit_code == 0
        assert message is None
        assert summary.total_records == 3
        assert database.get("text.1001").texts() == ["[/center]Rest", "Wait"]

    def test_missing_archive(self, tmp_path):
        exit_code, database, summary, message = cli.load_database(
            archive_file=str(tmp_path / "nope.json"), source=None, verbose=False
        )

        assert exit_code == 1
        assert database is None
        assert "Archive not found" in message

    def test_unsupported_archive(self, tmp_path):
        path = tmp_path / "TEXT.RSC"
        path.write_bytes(b"\x00\x01")

        exit_code, database, _, message = cli.load_database(
            archive_file=str(path), source=None, verbose=False
        )

        assert exit_code == 1
        assert database is None
        assert ".json" in message

    def test_unreadable_dump(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")

        exit_code, database, _, message = cli.load_database(
            archive_file=str(path), source=None, verbose=False
        )

        assert exit_code == 1
        assert "Could not load TEXT.RSC" in message

    def test_bad_token_reports_error_category(self, tmp_path):
        path = tmp_path / "font.json"
        path.write_text(
            '{"records": [{"id": 1, "tokens": [{"kind": "font", "font": 2}]}]}',
            encoding="utf-8",
        )

        exit_code, database, _, message = cli.load_database(
            archive_file=str(path), source=None, verbose=False
        )

        assert exit_code == 1
        assert database is None
        assert message.startswith("Source error: Unknown token kind 'font'")


class TestPrinting:
    def test_print_group_with_tokens(self, capsys):
        group = TextGroup(
            legacy_source=LegacySource.TEXT_RSC,
            primary_key="text.5",
            elements=[TextElement("[/center]Hi"), TextElement("")],
        )

        cli.print_group(group, with_tokens=True)

        out = capsys.readouterr().out
        assert "text.5 (TEXT.RSC)" in out
        assert "[0] [/center]Hi" in out
        assert "{'kind': 'center'}" in out
        assert "{'kind': 'separator'}" in out


class TestMain:
    def test_import_command(self, token_dump, clean_config, capsys):
        assert cli.main(["import", str(token_dump)]) == 0

        out = capsys.readouterr().out
        assert "Import complete." in out
        assert "Records:         3" in out

    def test_search_command(self, token_dump, clean_config, capsys):
        assert cli.main(["search", "TRAVELER", "--archive", str(token_dump)]) == 0

        out = capsys.readouterr().out
        assert "text.1000" in out
        assert "text.1001" not in out
        assert "1 matching group(s)." in out

    def test_show_missing_key(self, token_dump, clean_config, capsys):
        assert cli.main(["show", "text.9", "-a", str(token_dump)]) == 1
        assert "No text group with key 'text.9'." in capsys.readouterr().out

    def test_archive_from_environment(self, token_dump, clean_config, monkeypatch, capsys):
        monkeypatch.setenv("LEGACYTEXT_ARCHIVE", str(token_dump))

        assert cli.main(["import"]) == 0
        assert "Records:         3" in capsys.readouterr().out

    def test_configured_source(self, token_dump, clean_config, monkeypatch, capsys):
        monkeypatch.setenv("LEGACYTEXT_SOURCE", "FACTION.TXT")

        assert cli.main(["import", str(token_dump)]) == 0
        assert "Source:          FACTION.TXT" in capsys.readouterr().out

    def test_show_decodes_tokens(self, token_dump, clean_config, capsys):
        assert cli.main(["show", "text.1001", "--tokens", "--archive", str(token_dump)]) == 0

        out = capsys.readouterr().out
        assert "[1] Wait" in out
        assert str({"kind": "center"}) in out

    def test_verbose_after_subcommand(self, token_dump, clean_config, capsys):
        assert cli.main(["import", str(token_dump), "-v"]) == 0

        out = capsys.readouterr().out
        assert "Added 3 TEXT.RSC entries to database with 0 overwrites." in out

    def test_verbose_on_search(self, token_dump, clean_config, capsys):
        assert cli.main(["search", "--verbose", "--archive", str(token_dump)]) == 0

        out = capsys.readouterr().out
        assert "Added 3 TEXT.RSC entries" in out
        assert "3 matching group(s)." in out

    def test_search_archive_from_environment(
        self, token_dump, clean_config, monkeypatch, capsys
    ):
        monkeypatch.setenv("LEGACYTEXT_ARCHIVE", str(token_dump))

        assert cli.main(["search", "rest"]) == 0

        out = capsys.readouterr().out
        assert "text.1001" in out
        assert "1 matching group(s)." in out

    def test_show_archive_from_environment(
        self, token_dump, clean_config, monkeypatch, capsys
    ):
        monkeypatch.setenv("LEGACYTEXT_ARCHIVE", str(token_dump))

        assert cli.main(["show", "text.1000"]) == 0
        assert "[0] Hello, traveler\\nWelcome to Daggerfall." in capsys.readouterr().out

    def test_missing_archive_is_a_usage_error(self, clean_config, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["search", "rest"])

        assert excinfo.value.code == 2
        assert "LEGACYTEXT_ARCHIVE" in capsys.readouterr().err


class TestSettings:
    def test_dotenv_supplies_archive(self, token_dump, clean_config, tmp_path, capsys):
        (tmp_path / ".env").write_text(
            f"LEGACYTEXT_ARCHIVE={token_dump}\n",
            encoding="utf-8",
        )

        assert cli.main(["import"]) == 0

        out = capsys.readouterr().out
        assert "Records:         3" in out

    def test_environment_overrides_dotenv(
        self, token_dump, clean_config, tmp_path, monkeypatch
    ):
        from legacytext.configuration import get_settings

        (tmp_path / ".env").write_text(
            "LEGACYTEXT_ARCHIVE=elsewhere.json\n", encoding="utf-8"
        )
        monkeypatch.setenv("LEGACYTEXT_ARCHIVE", str(token_dump))

        assert get_settings().LEGACYTEXT_ARCHIVE == str(token_dump)

    def test_only_prefixed_names_are_read(self, clean_config, tmp_path, monkeypatch):
        from legacytext.configuration import get_settings

        (tmp_path / ".env").write_text(
            "ARCHIVE=ignored.json\n", encoding="utf-8"
        )
        monkeypatch.setenv("SOURCE", "faction_txt")

        settings = get_settings()
        assert settings.LEGACYTEXT_ARCHIVE is None
        assert settings.legacy_source() is None

    def test_source_accepts_file_names(self, clean_config, monkeypatch):
        from legacytext.configuration import get_settings

        monkeypatch.setenv("LEGACYTEXT_SOURCE", "FACTION.TXT")

        assert get_settings().legacy_source() is LegacySource.FACTION_TXT
