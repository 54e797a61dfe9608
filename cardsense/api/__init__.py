"""HTTP routers. Each module exposes a `router` mounted by cardsense.main."""
