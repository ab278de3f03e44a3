from .cli import lxdx

if __name__ == "__main__":
    lxdx()  # pylint: disable=no-value-for-parameter
