import click

import php_sniffer
import php_sniffer.main as main


@click.group()
def cli(): ...


@cli.command()
@click.option("--trace", "trace", is_flag=True, default=False)
@click.option(
    "--socket", "tcp", default=None, type=int, help="start a TCP server on the port"
)
@click.option("--host", "host", default="127.0.0.1", help="Host for TCP server")
@click.option(
    "--stdio", "stdio", is_flag=True, default=False, help="Use stdio communication"
)
def start(trace: bool, tcp: int | None, host: str, stdio: bool):
    if tcp is not None:
        comm_type = main.CommunicationType.TCP
    elif stdio is True:
        comm_type = main.CommunicationType.STDIO
    else:
        raise click.UsageError("Specify either --socket or --stdio")

    main.start_sync(comm_type=comm_type, host=host, port=tcp, trace=trace)


@cli.command()
def version():
    click.echo(f"PHP Sniffer Language Server {php_sniffer.__version__}")


if __name__ == "__main__":
    cli()
