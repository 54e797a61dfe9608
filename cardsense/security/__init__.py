"""Security module — caller authentication, rate limiting, audit trail."""
