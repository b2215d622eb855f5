from biodata_manager.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
