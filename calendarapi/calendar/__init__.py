"""Calendar feed handling: models, ICS parsing, normalization and source fetching."""
