"""HTTP interface of the trading bounded context."""
