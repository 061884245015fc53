"""Reporting subpackage - tabular exports of calculation results."""
