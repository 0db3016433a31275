from numeracy.cli.main import main

main()
