"""One configuration module per compiled report type."""
