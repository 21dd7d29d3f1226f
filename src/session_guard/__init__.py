"""In-memory abuse prevention for collaborative brainstorming sessions."""
