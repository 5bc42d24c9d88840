"""Field handler sets shared by the report types."""
