"""fleetwatch — vessel fleet monitoring backend with threshold alerting."""
