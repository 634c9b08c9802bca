"""Core pipeline: intermediate representation, parsing, and assembly.

Modules:
  ir        : Document IR dataclasses shared by scanner and formatters
  styles    : font/size/color resolution (StyleResolver, StyleCatalog)
  footnotes : footnote definition extraction and numbering
  metadata  : front matter split
  inline    : inline markup → styled runs
  scanner   : line-oriented block scanner
  context   : per-conversion state
  assembler : builds the final Document
"""
