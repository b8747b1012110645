"""Building blocks of a scan run: relevance, dedup, provisioning, submission, polling."""
