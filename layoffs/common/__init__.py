"""
Common model shared across Layoffs-ETL packages.

Kept small and dependency-free so both the cleaner and the reporting
package can import it.
"""
