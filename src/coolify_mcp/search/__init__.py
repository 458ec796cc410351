"""
Documentation search package.

This package provides a pure-Python in-memory search stack:
- parser: Splits the llms-full.txt bundle into section chunks
- schema: Searchable fields and their boosts
- analyzers: Tokenizers and filters (lowercase, optional stopwords)
- fuzzy: Edit distance and prefix term expansion
- stats: BM25/BM25F scoring statistics
- index: Inverted index and ranking
- snippet: Query-dense excerpt extraction
- engine: Lazy, single-flight loading and the public search API
"""
