"""Chart Timing Engine - section parsers and the tick/time conversion engine."""
