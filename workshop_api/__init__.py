"""Workshop scheduling API: appointments, elevators and the quote workflow"""
