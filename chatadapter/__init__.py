"""Parts for an OpenAI-style chat adapter: models, reply writers, matchers, pools and caches."""

__version__ = "3.0.0b0"