"""Domain services: scan analysis, history, shop ranking, weather and voice."""
