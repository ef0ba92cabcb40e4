"""AgriBot Service: chat and classification proxy for the plant-health assistant."""
