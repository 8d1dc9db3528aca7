"""bizscout.parser: structured/heuristic field extraction and URL location hints."""
