from wenyan_lsp.cli import app

if __name__ == "__main__":  # pragma: no cover
    app(prog_name="wenyan-lsp")  # pragma: no cover
