"""Service orders domain - Work orders and their status changes"""
