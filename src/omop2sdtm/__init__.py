"""omop2sdtm: declarative mapping of OMOP CDM tables onto CDISC SDTM domains."""

__version__ = "0.1.0"
