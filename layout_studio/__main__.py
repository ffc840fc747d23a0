from layout_studio.app import main

main()
