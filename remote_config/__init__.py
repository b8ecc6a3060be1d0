"""Remote configuration service for game clients."""
