"""OpsDesk back office: ad-hoc reporting over the business data store."""
