"""Appointments domain - Booking lifecycle and availability checking"""
