"""Unit tests for YAMLProfileLoader."""

import pytest
import yaml
from factories.advisor import make_profile_data

from modules.advisor import DEFAULT_PROFILES_DIR, YAMLProfileLoader


def write_profile(directory, filename, data):
    path = directory / filename
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.mark.unit
class TestBundledProfiles:
    def test_loads_every_bundled_kind(self):
        profiles = YAMLProfileLoader().load_all()

        assert sorted(profiles) == ["aws", "firebase", "local"]
        assert YAMLProfileLoader().profiles_dir == DEFAULT_PROFILES_DIR

    def test_bundled_profiles_describe_their_pricing(self):
        profiles = YAMLProfileLoader().load_all()

        assert profiles["local"].pricing.model == "free"
        assert profiles["aws"].pricing.free_tier.function_invocations == 1_000_000
        assert profiles["firebase"].scale.max_users == 100_000
        assert profiles["aws"].scale.max_users is None


@pytest.mark.unit
class TestCustomDirectory:
    def test_loads_valid_profiles(self, tmp_path):
        write_profile(tmp_path, "alpha.yml", make_profile_data("alpha"))
        write_profile(tmp_path, "beta.yml", make_profile_data("beta"))
        (tmp_path / "notes.txt").write_text("ignored")

        profiles = YAMLProfileLoader(tmp_path).load_all()

        assert sorted(profiles) == ["alpha", "beta"]
        assert profiles["alpha"].name == "Alpha Backend"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            YAMLProfileLoader(tmp_path / "missing")

    def test_empty_directory(self, tmp_path):
        with pytest.raises(ValueError, match="No capability profiles"):
            YAMLProfileLoader(tmp_path).load_all()

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / "broken.yml").write_text("kind: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Failed to parse"):
            YAMLProfileLoader(tmp_path).load_all()

    @pytest.mark.parametrize(
        "data",
        [
            {},
            make_profile_data("x", unexpected_field=True),
            make_profile_data("x", pricing={"model": "barter"}),
            make_profile_data("x", scale={"bonus": 50}),
        ],
    )
    def test_invalid_profile(self, tmp_path, data):
        write_profile(tmp_path, "x.yml", data)

        with pytest.raises(ValueError, match="Invalid capability profile"):
            YAMLProfileLoader(tmp_path).load_all()

    def test_duplicate_kind(self, tmp_path):
        write_profile(tmp_path, "one.yml", make_profile_data("same"))
        write_profile(tmp_path, "two.yml", make_profile_data("same"))

        with pytest.raises(ValueError, match="Duplicate"):
            YAMLProfileLoader(tmp_path).load_all()
