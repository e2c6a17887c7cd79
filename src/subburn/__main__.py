from subburn.cli.main import _main

if __name__ == "__main__":
    _main()
