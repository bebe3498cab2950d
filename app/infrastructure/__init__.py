"""Infrastructure shared by the backend provider layer.

Components:
- configuration: Settings management (Settings, CacheSettings, RetrySettings)
- logging: Structured logging (configure_logging, get_module_logger)
- resilience: Circuit breakers, retry policy and the backend error taxonomy
- cache: Two-tier result cache
- metrics: Operation metrics collection and export
- services: Dependency injection providers (get_settings, build_resilience)

Subpackages are imported directly, e.g.
``from infrastructure.resilience import CircuitBreakerRegistry``.
"""
