"""
Layoffs Reporting

Read-only aggregations over the cleaned layoffs table: totals by company,
industry, country, stage and year, monthly rolling totals, and the top
companies of each year.
"""
