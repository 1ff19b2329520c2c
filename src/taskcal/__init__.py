"""Task and calendar backend with recurring-event expansion and timeline layout."""
