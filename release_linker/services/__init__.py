"""Release processing: PR discovery, issue treatment, run coordination."""
