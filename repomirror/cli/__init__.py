"""Command line interface for repomirror"""
