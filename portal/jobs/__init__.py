"""Scheduled and one-off maintenance jobs"""
