"""HTTP surface: health, metrics exposition and request instrumentation."""
