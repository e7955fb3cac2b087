"""Support utilities: identifier sanitizer, LRU cache and naming helpers."""
