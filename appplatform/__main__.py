"""
CLI entry point, when used as a module: `python -m appplatform`.

Useful for debugging in the IDEs (use the start-mode "Module", module "appplatform").
"""
from appplatform import cli

if __name__ == '__main__':
    cli.main()
