"""Infrastructure adapters (storage backends, record store)."""
