"""Allow running the package as ``python -m gpuproc``."""

from gpuproc.app import main

if __name__ == "__main__":
    main()
