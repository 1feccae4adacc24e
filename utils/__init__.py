# Utility modules for FileDeck
