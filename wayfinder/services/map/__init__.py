# Map provider clients
