"""Person entity resolution: junk rules, evidence scoring, passes and graph mutations."""
