"""
Unit tests for global and per-call configuration.
"""

import pytest
import redis
from pydantic import ValidationError

from greencache import CallConfiguration, ConfigurationError, ConfigurationStore, GlobalConfiguration


class TestGlobalConfiguration:
    """Test cases for GlobalConfiguration."""

    def test_defaults(self):
        """Test default values."""
        config = GlobalConfiguration()

        assert config.cache_time == 600
        assert config.encrypt is False
        assert config.secret is None
        assert config.skip_cache is False
        assert config.silent is False
        assert config.logger is None
        assert config.log_prefix == "greencache"
        assert config.key_prefix == ""
        assert config.store is None

    def test_reads_environment(self, monkeypatch):
        """Test GREENCACHE_ environment variables."""
        monkeypatch.setenv("GREENCACHE_CACHE_TIME", "120")
        monkeypatch.setenv("GREENCACHE_KEY_PREFIX", "env:")
        monkeypatch.setenv("GREENCACHE_ENCRYPT", "true")

        config = GlobalConfiguration()

        assert config.cache_time == 120
        assert config.key_prefix == "env:"
        assert config.encrypt is True


class TestConfigurationStore:
    """Test cases for ConfigurationStore."""

    @pytest.fixture
    def configuration_store(self, store):
        return ConfigurationStore(GlobalConfiguration(store=store))

    def test_global_configuration_created_on_demand(self):
        """Test lazy creation of the global configuration."""
        configuration_store = ConfigurationStore()

        first = configuration_store.global_configuration
        second = configuration_store.global_configuration

        assert isinstance(first, GlobalConfiguration)
        assert first is second

    def test_configure_with_mutator(self, configuration_store):
        """Test configuring through a mutator callable."""
        def mutate(config):
            config.cache_time = 100
            config.secret = "bar"
            config.skip_cache = True

        configuration_store.configure(mutate)

        config = configuration_store.global_configuration
        assert config.cache_time == 100
        assert config.secret == "bar"
        assert config.skip_cache is True

    def test_configure_with_keywords(self, configuration_store):
        """Test configuring through keyword fields."""
        config = configuration_store.configure(silent=True, log_prefix="myapp")

        assert config.silent is True
        assert config.log_prefix == "myapp"

    def test_configure_rejects_unknown_fields(self, configuration_store):
        """Test unknown keyword fields."""
        with pytest.raises(ConfigurationError) as exc_info:
            configuration_store.configure(cache_ttl=5)

        assert exc_info.value.code == "CONFIGURATION_ERROR"
        assert exc_info.value.details == {"unknown": ["cache_ttl"]}

    def test_configure_validates_values(self, configuration_store):
        """Test invalid values assigned by a mutator."""
        def mutate(config):
            config.cache_time = 0

        with pytest.raises(ConfigurationError):
            configuration_store.configure(mutate)

        assert configuration_store.global_configuration.cache_time == 600

    def test_configure_rejects_unknown_attribute_in_mutator(self, configuration_store):
        """Test a mutator assigning a field that does not exist."""
        def mutate(config):
            config.cache_ttl = 10

        with pytest.raises(ConfigurationError):
            configuration_store.configure(mutate)

    def test_configure_failure_leaves_globals_untouched(self, configuration_store):
        """Test that a failed configure applies none of its changes."""
        def mutate(config):
            config.key_prefix = "half:"

        with pytest.raises(ConfigurationError):
            configuration_store.configure(mutate, silent=True, cache_time=0)

        config = configuration_store.global_configuration
        assert config.key_prefix == ""
        assert config.silent is False
        assert config.cache_time == 600

    def test_configure_keeps_global_identity(self, configuration_store, store):
        """Test that successful changes apply to the existing configuration object."""
        before = configuration_store.global_configuration

        after = configuration_store.configure(cache_time=30)

        assert after is before
        assert before.cache_time == 30
        assert before.store is store

    def test_merge_override_precedence(self, configuration_store, store):
        """Test that overrides replace only the named fields."""
        config = configuration_store.merge({"cache_time": 10})

        assert isinstance(config, CallConfiguration)
        assert config.cache_time == 10
        assert config.encrypt is False
        assert config.secret is None
        assert config.skip_cache is False
        assert config.silent is False
        assert config.log_prefix == "greencache"
        assert config.key_prefix == ""
        assert config.store is store

    def test_merge_without_overrides(self, configuration_store):
        """Test merging with no overrides."""
        config = configuration_store.merge()

        assert config.cache_time == 600

    def test_merge_rejects_unknown_overrides(self, configuration_store):
        """Test unknown override keys."""
        with pytest.raises(ConfigurationError) as exc_info:
            configuration_store.merge({"cache_time": 10, "ttl": 5, "namespace": "x"})

        assert exc_info.value.details == {"unknown": ["namespace", "ttl"]}

    def test_merge_rejects_invalid_overrides(self, configuration_store):
        """Test invalid override values."""
        with pytest.raises(ConfigurationError) as exc_info:
            configuration_store.merge({"cache_time": -1})

        assert exc_info.value.details["errors"][0]["field"] == "cache_time"

    def test_snapshot_isolated_from_later_changes(self, configuration_store):
        """Test that later global changes do not leak into a snapshot."""
        config = configuration_store.merge()

        configuration_store.configure(cache_time=5, key_prefix="late:")

        assert config.cache_time == 600
        assert config.key_prefix == ""
        assert configuration_store.merge().cache_time == 5

    def test_snapshot_is_frozen(self, configuration_store):
        """Test that a call configuration cannot be mutated."""
        config = configuration_store.merge()

        with pytest.raises(ValidationError):
            config.cache_time = 1

    def test_merge_builds_redis_client_when_unset(self):
        """Test lazy creation of the redis client from redis_url."""
        configuration_store = ConfigurationStore(
            GlobalConfiguration(redis_url="redis://cache.internal:6380/2", probe_timeout=0.5)
        )

        config = configuration_store.merge()

        assert isinstance(config.store, redis.Redis)
        assert configuration_store.global_configuration.store is config.store
        connection_kwargs = config.store.connection_pool.connection_kwargs
        assert connection_kwargs["host"] == "cache.internal"
        assert connection_kwargs["port"] == 6380
        assert connection_kwargs["socket_timeout"] == 0.5
        assert configuration_store.merge().store is config.store

    def test_store_override_skips_client_creation(self, store):
        """Test that a per-call store leaves the global one unset."""
        configuration_store = ConfigurationStore(GlobalConfiguration())

        config = configuration_store.merge({"store": store})

        assert config.store is store
        assert configuration_store.global_configuration.store is None

    def test_reset(self, configuration_store):
        """Test discarding the global configuration."""
        configuration_store.configure(cache_time=42)

        configuration_store.reset()

        assert configuration_store.global_configuration.cache_time == 600


class TestCallConfiguration:
    """Test cases for CallConfiguration helpers."""

    def test_full_key(self):
        """Test key prefixing."""
        assert CallConfiguration(key_prefix="ns:").full_key("foo") == "ns:foo"
        assert CallConfiguration().full_key("foo") == "foo"

    def test_event_name(self):
        """Test namespaced event names."""
        assert CallConfiguration().event_name("cache.hit") == "greencache.cache.hit"
        assert CallConfiguration(log_prefix="myapp").event_name("cache.miss") == "myapp.cache.miss"

    def test_rejects_unknown_fields(self):
        """Test that snapshots only carry known fields."""
        with pytest.raises(ValidationError):
            CallConfiguration(ttl=5)
