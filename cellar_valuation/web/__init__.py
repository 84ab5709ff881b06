"""Web API for valuations and critic scores."""
