"""Elevators domain - Vehicle lifts, reservations and usage tracking"""
