"""Command-line interface for the hackmud chat client"""
