from nolp.cli.main import main

main()
