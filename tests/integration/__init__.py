"""
tests/integration/
~~~~~~~~~~~~~~~~~~
Integration tests that call real external APIs.

These tests are SKIPPED by default. To run them:

    INTEGRATION_TESTS=1 pytest tests/integration/ -v

Rate Limit Considerations:
- Nominatim: 1 req/sec - rate limited in code
- IQAir / OpenWeatherMap / LLM providers need keys and are not covered here
- Others: Be respectful with request frequency
"""
