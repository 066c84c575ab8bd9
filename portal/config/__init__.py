"""Configuration and database wiring"""
