"""
Unit tests for Robolt configuration models.
"""

import pytest
from pydantic import ValidationError

from robolt.config import RouteClientConfig, TransportConfig, build_configs, thaw


class TestRouteClientConfig:
    def test_defaults(self):
        config = RouteClientConfig(prefix="api")

        assert config.static_base_path == "static"
        assert config.default_filter == {}
        assert config.count_response == "number"

    def test_slashes_are_stripped(self):
        config = RouteClientConfig(prefix="/api/v1/", static_base_path="/files/")

        assert config.prefix == "api/v1"
        assert config.static_base_path == "files"

    def test_is_frozen(self):
        config = RouteClientConfig(prefix="api")

        with pytest.raises(ValidationError):
            config.prefix = "other"

    def test_default_filter_is_read_only(self):
        source = {"deleted": False, "tags": {"$in": ["a"]}}
        config = RouteClientConfig(prefix="api", default_filter=source)

        with pytest.raises(TypeError):
            config.default_filter["deleted"] = True
        with pytest.raises(TypeError):
            config.default_filter["tags"]["$in"] = ["b"]
        source["deleted"] = True

        assert thaw(config.default_filter) == {
            "deleted": False,
            "tags": {"$in": ["a"]},
        }

    def test_empty_default_filter_is_read_only(self):
        with pytest.raises(TypeError):
            RouteClientConfig(prefix="api").default_filter["deleted"] = True

    def test_rejects_unknown_count_contract(self):
        with pytest.raises(ValidationError):
            RouteClientConfig(prefix="api", count_response="string")


class TestTransportConfig:
    def test_base_url_is_normalized(self):
        assert TransportConfig(base_url="https://x//").base_url == "https://x"

    def test_headers_are_read_only(self):
        config = TransportConfig(base_url="https://x", headers={"X-Token": "t"})

        with pytest.raises(TypeError):
            config.headers["X-Token"] = "other"

        assert config.headers == {"X-Token": "t"}

    def test_build_configs_splits_options(self):
        transport_config, route_config = build_configs(
            "https://x",
            "api",
            default_filter={"deleted": False},
            count_response="object",
            timeout=3.0,
            verify=False,
        )

        assert transport_config.timeout == 3.0
        assert transport_config.verify is False
        assert route_config.default_filter == {"deleted": False}
        assert route_config.count_response == "object"
