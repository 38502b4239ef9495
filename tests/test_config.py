import pytest
import yaml

from beltline_nodes.config import CONFIG_ENV_VAR, DEFAULTS, load_config, merge_config


def test_missing_file_falls_back_to_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config["buffer_m"] == 20.0
    assert config["sample_spacing_m"] == 10.0
    assert config["top_k"] == 3
    assert config["imagery"] == DEFAULTS["imagery"]


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"top_k": 5, "imagery": {"fov": 120}}))
    config = load_config(path)
    assert config["top_k"] == 5
    assert config["imagery"]["fov"] == 120
    # untouched keys of a nested section survive
    assert config["imagery"]["size"] == DEFAULTS["imagery"]["size"]
    assert config["projected_crs"] == DEFAULTS["projected_crs"]


def test_env_var_selects_config(tmp_path, monkeypatch):
    path = tmp_path / "other.yaml"
    path.write_text("buffer_m: 35\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert load_config()["buffer_m"] == 35


def test_merge_does_not_share_defaults():
    config = merge_config({})
    config["inputs"]["streets"] = "elsewhere.geojson"
    assert DEFAULTS["inputs"]["streets"] != "elsewhere.geojson"


@pytest.mark.parametrize(
    "raw",
    [
        {"buffer_m": 0},
        {"sample_spacing_m": -1},
        {"top_k": 0},
        {"reassociation_tolerance_m": 0},
        {"reassociation_tolerance_m": -0.5},
    ],
)
def test_invalid_values_are_rejected(raw):
    with pytest.raises(ValueError):
        merge_config(raw)


def test_non_mapping_file_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_repo_config_matches_defaults():
    config = load_config()
    assert config["buffer_m"] == DEFAULTS["buffer_m"]
    assert config["highway_allow_list"] == DEFAULTS["highway_allow_list"]


@pytest.mark.parametrize("section", ["inputs", "imagery"])
def test_scalar_section_is_rejected(section):
    with pytest.raises(ValueError, match=section):
        merge_config({section: "x"})


def test_empty_section_keeps_defaults():
    assert merge_config({"outputs": None})["outputs"] == DEFAULTS["outputs"]
