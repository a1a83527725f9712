"""FinMa HTTP API: configuration, auth, database service and routers."""
