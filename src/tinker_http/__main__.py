from tinker_http.cli.main import run

if __name__ == "__main__":
    run()
