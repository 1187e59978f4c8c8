"""Signal conditioning and spectral probes."""
