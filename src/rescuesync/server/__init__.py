"""Reference remote authority server for rescuesync clients."""
