"""Static data shipped with coderaid."""
