"""Package entry point for ``python -m word_converter note.md``."""

if __name__ == "__main__":
    from word_converter.cli import main
    main()
