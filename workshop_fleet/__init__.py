"""Provision and tear down per-user workshop droplets and their DNS records."""
