"""Command line interface for release-guard"""
