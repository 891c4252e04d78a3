"""Quotation rendering: layout data, print views and PDF export."""
