"""Infrastructure: Firestore REST transport, codec and credentials."""
