"""Tests for configuration loading."""

import json

import pytest

from babbler.config import (
    BabblerConfig,
    dict_to_config,
    find_config_file,
    load_config,
    load_json_config,
    load_toml_config,
)


class TestBabblerConfig:
    """Tests for BabblerConfig defaults and bounds."""

    def test_defaults(self, temp_project):
        config = BabblerConfig(project_root=temp_project)
        assert config.author_size == 32
        assert config.category_size == 64
        assert config.sub_category_size == 64
        assert config.title_size == 255
        assert config.get_database_path() == temp_project / "babbler.db"

    def test_absolute_database_path(self, temp_project):
        db = temp_project / "elsewhere" / "entries.db"
        config = BabblerConfig(project_root=temp_project, database=str(db))
        assert config.get_database_path() == db

    @pytest.mark.parametrize("field", ["author_size", "category_size", "sub_category_size", "title_size"])
    @pytest.mark.parametrize("value", [0, -1, "64", 1.5, True])
    def test_invalid_limits_rejected(self, temp_project, field, value):
        with pytest.raises(ValueError, match=field):
            BabblerConfig(project_root=temp_project, **{field: value})

    def test_invalid_lock_timeout_rejected(self, temp_project):
        with pytest.raises(ValueError, match="lock_timeout"):
            BabblerConfig(project_root=temp_project, lock_timeout=0)

    def test_field_limits(self, temp_project):
        config = BabblerConfig(project_root=temp_project, title_size=80)
        assert config.field_limits() == {
            "category": 64,
            "sub_category": 64,
            "title": 80,
            "author": 32,
        }


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_finds_toml_config(self, temp_project):
        """TOML config is found first."""
        (temp_project / "babbler_config.toml").write_text("")
        (temp_project / "babbler_config.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == "babbler_config.toml"

    def test_finds_json_config(self, temp_project):
        """JSON config is found if no TOML."""
        (temp_project / "babbler_config.json").write_text("{}")

        found = find_config_file(temp_project)
        assert found.name == "babbler_config.json"

    def test_finds_dotfile_config(self, temp_project):
        """Dotfile configs are found."""
        (temp_project / ".babbler.toml").write_text("")

        found = find_config_file(temp_project)
        assert found.name == ".babbler.toml"

    def test_returns_none_if_no_config(self, temp_project):
        """Returns None if no config file found."""
        assert find_config_file(temp_project) is None


class TestDictToConfig:
    """Tests for dict_to_config."""

    def test_full_dict(self, temp_project):
        config = dict_to_config(
            {
                "project": {"name": "blog"},
                "database": {"path": "data/blog.db", "lock_timeout": 3},
                "limits": {"author": 16, "category": 20, "sub_category": 30, "title": 100},
            },
            temp_project,
        )

        assert config.project_name == "blog"
        assert config.get_database_path() == temp_project / "data" / "blog.db"
        assert config.lock_timeout == 3.0
        assert config.author_size == 16
        assert config.category_size == 20
        assert config.sub_category_size == 30
        assert config.title_size == 100

    def test_empty_dict_uses_defaults(self, temp_project):
        config = dict_to_config({}, temp_project)
        assert config == BabblerConfig(project_root=temp_project)

    def test_bad_limit_rejected(self, temp_project):
        with pytest.raises(ValueError):
            dict_to_config({"limits": {"title": 0}}, temp_project)


class TestLoadConfig:
    """Tests for load_config."""

    def test_no_file_gives_defaults(self, temp_project):
        config = load_config(temp_project)
        assert config.project_root == temp_project
        assert config.database == "babbler.db"

    def test_toml(self, temp_project):
        (temp_project / "babbler_config.toml").write_text(
            '[project]\nname = "notes"\n\n[limits]\ntitle = 120\n'
        )
        config = load_config(temp_project)
        assert config.project_name == "notes"
        assert config.title_size == 120

    def test_json(self, temp_project):
        (temp_project / ".babbler.json").write_text(
            json.dumps({"database": {"path": "x.db"}, "limits": {"author": 8}})
        )
        config = load_config(temp_project)
        assert config.database == "x.db"
        assert config.author_size == 8

    def test_explicit_path(self, temp_project):
        path = temp_project / "custom.toml"
        path.write_text('[project]\nname = "explicit"\n')
        assert load_config(temp_project, path).project_name == "explicit"

    def test_unsupported_suffix(self, temp_project):
        path = temp_project / "config.yaml"
        path.write_text("project: x")
        with pytest.raises(ValueError, match="Unsupported"):
            load_config(temp_project, path)

    def test_loaders(self, temp_project):
        toml_path = temp_project / "a.toml"
        toml_path.write_text("[limits]\ncategory = 10\n")
        json_path = temp_project / "a.json"
        json_path.write_text('{"limits": {"category": 11}}')

        assert load_toml_config(toml_path) == {"limits": {"category": 10}}
        assert load_json_config(json_path) == {"limits": {"category": 11}}
