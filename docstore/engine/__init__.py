"""DocStore Engine — configuration, caller context, errors, logging, health."""
