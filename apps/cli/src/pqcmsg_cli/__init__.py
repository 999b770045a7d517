"""Command-line front end for secure envelopes."""
