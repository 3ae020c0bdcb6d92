"""Knowledge synchronization service for remote conversational agents."""
