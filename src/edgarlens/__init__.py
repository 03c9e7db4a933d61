"""edgarlens - lexical research over cached SEC filings."""

__version__ = "0.1.0"
